"""
Byte stream sources.

Adapters turning the readers found in the wild (aiohttp body parts,
asyncio stream readers, aiofiles handles, local files) into async iterables
of bytes that the upload coordinator can consume.
"""
from pathlib import Path
from typing import Any, AsyncIterator, Union

import aiofiles

DEFAULT_CHUNK_SIZE = 64 * 1024


async def iter_chunks(readable: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Iterate over an async readable in chunks.
    
    Supports, in order of preference:
    - objects with ``read_chunk(size)`` (aiohttp BodyPartReader)
    - objects with an async ``read(size)`` (asyncio.StreamReader, aiofiles)
    - async iterables of bytes
    
    Args:
        readable: Source to read from
        chunk_size: Maximum chunk size for reader-based sources
        
    Yields:
        Non-empty byte chunks
        
    Raises:
        TypeError: If the object cannot be read asynchronously
    """
    if chunk_size <= 0:
        raise ValueError("Chunk size must be positive")
    
    read_chunk = getattr(readable, 'read_chunk', None)
    if read_chunk is not None:
        while True:
            chunk = await read_chunk(chunk_size)
            if not chunk:
                return
            yield chunk
    elif hasattr(readable, 'read'):
        while True:
            chunk = await readable.read(chunk_size)
            if not chunk:
                return
            yield chunk
    elif hasattr(readable, '__aiter__'):
        async for chunk in readable:
            if chunk:
                yield chunk
    else:
        raise TypeError(f"Cannot read chunks from {type(readable).__name__}")


async def file_stream(
    file_path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """
    Stream a local file without blocking the event loop.
    
    Args:
        file_path: Path to the file
        chunk_size: Size of each read in bytes
        
    Yields:
        File content in chunks
    """
    async with aiofiles.open(file_path, 'rb') as f:
        async for chunk in iter_chunks(f, chunk_size):
            yield chunk
