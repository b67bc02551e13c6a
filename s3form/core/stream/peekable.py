"""
Peekable byte stream.

Lets the content-type resolver look at the first chunk of a file stream
without consuming it. The held-back chunk is replayed first when the stream
is iterated, so at most one chunk is ever buffered.
"""
from typing import AsyncIterable, AsyncIterator, Optional


class PeekableStream:
    """
    Async iterator over a byte stream with one chunk of lookahead.
    
    Empty chunks from the source are skipped; iteration ends when the source
    is exhausted. Errors raised by the source propagate unchanged.
    """
    
    def __init__(self, source: AsyncIterable[bytes]):
        """
        Initialize peekable stream.
        
        Args:
            source: Async iterable producing bytes-like chunks
        """
        self._source = source
        self._iterator: AsyncIterator[bytes] = source.__aiter__()
        self._pending: Optional[bytes] = None
        self._exhausted = False
    
    @property
    def exhausted(self) -> bool:
        """Returns True once the source has signalled end of stream."""
        return self._exhausted and not self._pending
    
    async def peek(self) -> bytes:
        """
        Return the next chunk without consuming it.
        
        Returns:
            The next non-empty chunk, or b'' at end of stream
        """
        if self._pending is None:
            self._pending = await self._next_chunk()
        return self._pending
    
    def __aiter__(self) -> 'PeekableStream':
        return self
    
    async def __anext__(self) -> bytes:
        if self._pending is not None:
            chunk, self._pending = self._pending, None
        else:
            chunk = await self._next_chunk()
        
        if not chunk:
            raise StopAsyncIteration
        return chunk
    
    async def aclose(self) -> None:
        """Close the underlying source if it supports it."""
        self._pending = None
        self._exhausted = True
        aclose = getattr(self._iterator, 'aclose', None)
        if aclose is not None:
            await aclose()
    
    async def _next_chunk(self) -> bytes:
        if self._exhausted:
            return b''
        
        while True:
            try:
                chunk = await self._iterator.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                return b''
            
            if chunk:
                return chunk if isinstance(chunk, bytes) else bytes(chunk)
