"""
boto3 storage client.

Implements StorageClientProtocol on top of the S3 multipart upload API.
boto3 is blocking, so every call runs in a worker thread through
asyncio.to_thread and the event loop stays free for other uploads.

S3 requires every part except the last to be at least 5 MiB, so incoming
chunks are accumulated into a buffer of at most one part per upload.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import boto3

from ..core.logging import get_logger
from ..core.upload.models import UploadParams, CompletedUpload

logger = get_logger('integrations.boto3')

MIN_PART_SIZE = 5 * 1024 * 1024

# UploadParams attribute -> create_multipart_upload argument
PARAM_ARGUMENTS = {
    'content_type': 'ContentType',
    'acl': 'ACL',
    'server_side_encryption': 'ServerSideEncryption',
    'sse_kms_key_id': 'SSEKMSKeyId',
    'storage_class': 'StorageClass',
    'content_disposition': 'ContentDisposition',
    'cache_control': 'CacheControl',
    'content_encoding': 'ContentEncoding',
}


@dataclass
class Boto3ClientConfig:
    """
    Configuration for the boto3 storage client.
    
    Attributes:
        part_size: Size of each uploaded part in bytes (min 5 MiB)
        endpoint_url: Custom endpoint (MinIO, localstack...)
        region_name: AWS region
    """
    part_size: int = MIN_PART_SIZE
    endpoint_url: Optional[str] = None
    region_name: Optional[str] = None
    
    def __post_init__(self):
        if self.part_size < MIN_PART_SIZE:
            raise ValueError(f"Part size must be at least {MIN_PART_SIZE} bytes")
    
    def create_client(self) -> Any:
        """Create a boto3 S3 client from this configuration."""
        return boto3.client(
            's3',
            endpoint_url=self.endpoint_url,
            region_name=self.region_name
        )


@dataclass
class MultipartHandle:
    """
    State of one multipart upload.
    
    Attributes:
        bucket: Destination bucket
        key: Object key
        upload_id: S3 upload id
        parts: Completed parts (ETag and PartNumber)
        buffer: Bytes not yet sent as a part
    """
    bucket: str
    key: str
    upload_id: str
    parts: List[Dict[str, Any]] = field(default_factory=list)
    buffer: bytearray = field(default_factory=bytearray, repr=False)
    
    @property
    def next_part_number(self) -> int:
        return len(self.parts) + 1


def to_create_arguments(params: UploadParams) -> Dict[str, Any]:
    """Map UploadParams to create_multipart_upload keyword arguments."""
    arguments: Dict[str, Any] = {'Bucket': params.bucket, 'Key': params.key}
    for attribute, argument in PARAM_ARGUMENTS.items():
        value = getattr(params, attribute)
        if value is not None:
            arguments[argument] = value
    if params.metadata:
        arguments['Metadata'] = dict(params.metadata)
    return arguments


class Boto3StorageClient:
    """
    Storage client backed by a boto3 S3 client.
    
    One instance can serve any number of concurrent uploads; all per-upload
    state lives in the MultipartHandle.
    
    Example:
        >>> client = Boto3StorageClient(boto3.client('s3'))
        >>> storage = S3Storage(client=client, bucket='uploads')
    """
    
    def __init__(self, s3_client: Any = None, config: Optional[Boto3ClientConfig] = None):
        """
        Initialize storage client.
        
        Args:
            s3_client: boto3 S3 client (created from config if None)
            config: Client configuration
        """
        self._config = config or Boto3ClientConfig()
        self._s3 = s3_client if s3_client is not None else self._config.create_client()
    
    @property
    def part_size(self) -> int:
        return self._config.part_size
    
    async def create_upload(self, params: UploadParams) -> MultipartHandle:
        """Initiate a multipart upload."""
        response = await asyncio.to_thread(
            self._s3.create_multipart_upload, **to_create_arguments(params)
        )
        upload_id = response.get('UploadId')
        if not upload_id:
            raise ValueError(f"No upload id returned for {params.bucket}/{params.key}")
        
        logger.debug(f"Created multipart upload {upload_id} for {params.bucket}/{params.key}")
        return MultipartHandle(bucket=params.bucket, key=params.key, upload_id=upload_id)
    
    async def write_chunk(self, handle: MultipartHandle, data: bytes) -> None:
        """Buffer a chunk and send full parts; returns once they are stored."""
        handle.buffer.extend(data)
        
        while len(handle.buffer) >= self.part_size:
            part = bytes(handle.buffer[:self.part_size])
            del handle.buffer[:self.part_size]
            await self._upload_part(handle, part)
    
    async def complete_upload(self, handle: MultipartHandle) -> CompletedUpload:
        """Send the remaining bytes as the last part and complete the upload."""
        # An empty object still needs one (empty) part
        if handle.buffer or not handle.parts:
            part = bytes(handle.buffer)
            handle.buffer.clear()
            await self._upload_part(handle, part)
        
        response = await asyncio.to_thread(
            self._s3.complete_multipart_upload,
            Bucket=handle.bucket,
            Key=handle.key,
            UploadId=handle.upload_id,
            MultipartUpload={'Parts': handle.parts}
        )
        logger.debug(f"Completed multipart upload {handle.upload_id} ({len(handle.parts)} parts)")
        return CompletedUpload(
            etag=response.get('ETag', ''),
            location=response.get('Location', ''),
            version_id=response.get('VersionId')
        )
    
    async def abort_upload(self, handle: MultipartHandle) -> None:
        """Abort the multipart upload, discarding stored parts."""
        handle.buffer.clear()
        await asyncio.to_thread(
            self._s3.abort_multipart_upload,
            Bucket=handle.bucket,
            Key=handle.key,
            UploadId=handle.upload_id
        )
        logger.debug(f"Aborted multipart upload {handle.upload_id}")
    
    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object."""
        await asyncio.to_thread(self._s3.delete_object, Bucket=bucket, Key=key)
    
    async def _upload_part(self, handle: MultipartHandle, data: bytes) -> None:
        part_number = handle.next_part_number
        response = await asyncio.to_thread(
            self._s3.upload_part,
            Bucket=handle.bucket,
            Key=handle.key,
            UploadId=handle.upload_id,
            PartNumber=part_number,
            Body=data
        )
        handle.parts.append({'ETag': response.get('ETag'), 'PartNumber': part_number})
        logger.debug(f"Uploaded part {part_number} of {handle.key!r} ({len(data)} bytes)")
