"""Pytest fixtures for s3form tests."""
import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import pytest

from s3form import S3Storage
from s3form.core.upload import UploadParams, CompletedUpload

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


@dataclass
class MemoryUpload:
    """Upload handle of the in-memory client."""
    upload_id: int
    params: UploadParams
    chunks: List[bytes] = field(default_factory=list)
    aborted: bool = False
    completed: bool = False


class MemoryStorageClient:
    """
    In-memory storage client.
    
    complete_upload answers with 'mock-etag' / 'mock-location' and every call
    is recorded. Failures can be injected per method name, and the gates
    hold create, write and complete calls until they are set.
    """
    
    def __init__(
        self,
        fail_on: Optional[Set[str]] = None,
        fail_after_chunks: Optional[int] = None,
        write_delay: float = 0
    ):
        self.fail_on = set(fail_on or ())
        self.fail_after_chunks = fail_after_chunks
        self.write_delay = write_delay
        self.create_gate: Optional[asyncio.Event] = None
        self.write_gate: Optional[asyncio.Event] = None
        self.complete_gate: Optional[asyncio.Event] = None
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.uploads: List[MemoryUpload] = []
        self.calls: List[str] = []
        self.aborted_keys: List[str] = []
        self._ids = itertools.count(1)
    
    def _check(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise ConnectionError(f"{method} failed")
    
    async def create_upload(self, params: UploadParams) -> MemoryUpload:
        self._check('create_upload')
        if self.create_gate is not None:
            await self.create_gate.wait()
        upload = MemoryUpload(upload_id=next(self._ids), params=params)
        self.uploads.append(upload)
        return upload
    
    async def write_chunk(self, handle: MemoryUpload, data: bytes) -> None:
        self._check('write_chunk')
        if handle.aborted:
            raise ConnectionError("Upload was aborted")
        if self.fail_after_chunks is not None and len(handle.chunks) >= self.fail_after_chunks:
            raise ConnectionError("Connection reset")
        if self.write_gate is not None:
            await self.write_gate.wait()
        await asyncio.sleep(self.write_delay)
        handle.chunks.append(bytes(data))
    
    async def complete_upload(self, handle: MemoryUpload) -> CompletedUpload:
        self._check('complete_upload')
        if self.complete_gate is not None:
            await self.complete_gate.wait()
        handle.completed = True
        params = handle.params
        self.objects[(params.bucket, params.key)] = b''.join(handle.chunks)
        return CompletedUpload(etag='mock-etag', location='mock-location')
    
    async def abort_upload(self, handle: MemoryUpload) -> None:
        self._check('abort_upload')
        handle.aborted = True
        self.aborted_keys.append(handle.params.key)
    
    async def delete_object(self, bucket: str, key: str) -> None:
        self._check('delete_object')
        if (bucket, key) not in self.objects:
            raise KeyError(f"NoSuchKey: {bucket}/{key}")
        del self.objects[(bucket, key)]


async def _byte_stream(data: bytes, chunk_size: int = 16):
    for start in range(0, len(data), chunk_size):
        await asyncio.sleep(0)
        yield data[start:start + chunk_size]


@pytest.fixture
def client():
    """Returns an in-memory storage client."""
    return MemoryStorageClient()


@pytest.fixture
def make_client():
    """Returns a factory for in-memory storage clients."""
    return MemoryStorageClient


@pytest.fixture
def make_stream():
    """Returns a factory for async byte streams: make_stream(data, chunk_size)."""
    return _byte_stream


@pytest.fixture
def storage(client):
    """Returns a storage engine with default options."""
    return S3Storage(client=client, bucket='test')


@pytest.fixture
def png_bytes():
    """Returns the 68-byte ffffff.png test image."""
    data = PNG_SIGNATURE + b'\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00'
    return data + b'\x00' * (68 - len(data))


@pytest.fixture
def svg_bytes():
    """Returns the 100-byte test.svg image."""
    data = (
        b'<?xml version="1.0"?>\n'
        b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"></svg>'
    )
    return data + b'\n' * (100 - len(data))
