"""Byte stream helpers."""
from .peekable import PeekableStream
from .sources import iter_chunks, file_stream, DEFAULT_CHUNK_SIZE

__all__ = [
    'PeekableStream',
    'iter_chunks',
    'file_stream',
    'DEFAULT_CHUNK_SIZE',
]
