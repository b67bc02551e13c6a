"""
Protocol definitions for the upload module.

The storage client is supplied by the caller; the engine only depends on the
interface below. The boto3 adapter in s3form.integrations is one
implementation, the in-memory client used by the tests is another.
"""
from typing import Any, AsyncIterable, Callable, Protocol

from .models import UploadParams, CompletedUpload, UploadProgress


REQUIRED_CLIENT_METHODS = (
    'create_upload',
    'write_chunk',
    'complete_upload',
    'abort_upload',
    'delete_object',
)

ByteStream = AsyncIterable[bytes]
ProgressCallback = Callable[[UploadProgress], None]


class StorageClientProtocol(Protocol):
    """Protocol for object storage clients."""
    
    async def create_upload(self, params: UploadParams) -> Any:
        """
        Initiate a multipart upload.
        
        Args:
            params: Bucket, key, content type and object settings
            
        Returns:
            Opaque upload handle passed to the other calls
        """
        ...
    
    async def write_chunk(self, handle: Any, data: bytes) -> None:
        """
        Send the next chunk of the object.
        
        Chunks arrive in stream order. The call may wait until the backend
        is ready to accept more data; the engine does not read the next
        chunk until it returns.
        """
        ...
    
    async def complete_upload(self, handle: Any) -> CompletedUpload:
        """Finalize the upload and return ETag and location."""
        ...
    
    async def abort_upload(self, handle: Any) -> None:
        """Abort an in-flight upload, discarding sent data."""
        ...
    
    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete a stored object."""
        ...
