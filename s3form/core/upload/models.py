"""
Data models for the upload module.

Uses dataclasses; results handed back to the caller are frozen.
"""
from dataclasses import dataclass, field, replace, asdict
from enum import Enum
from typing import Any, AsyncIterable, Dict, Optional


@dataclass(frozen=True)
class IncomingFile:
    """
    A file field as handed over by the form parser.
    
    Attributes:
        field_name: Name of the form field
        original_name: Filename sent by the client (may be None)
        stream: Async iterable producing the file bytes
        encoding: Content-Transfer-Encoding of the part, if any
        mime_type: Content type declared by the client (informational)
    """
    field_name: str
    original_name: Optional[str]
    stream: AsyncIterable[bytes] = field(repr=False, compare=False)
    encoding: Optional[str] = None
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class UploadParams:
    """
    Everything the storage client needs to initiate an upload.
    
    Attributes:
        bucket: Destination bucket
        key: Object key
        content_type: MIME type of the object (None until resolved)
        acl: Canned ACL
        server_side_encryption: Encryption mode token
        sse_kms_key_id: KMS key id used with aws:kms
        storage_class: Storage class
        content_disposition: Content-Disposition header
        cache_control: Cache-Control header
        content_encoding: Content-Encoding header
        metadata: User metadata
    """
    bucket: str
    key: str
    content_type: Optional[str] = None
    acl: Optional[str] = None
    server_side_encryption: Optional[str] = None
    sse_kms_key_id: Optional[str] = None
    storage_class: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    
    def with_content_type(self, content_type: str) -> 'UploadParams':
        """Return a copy with the resolved content type."""
        return replace(self, content_type=content_type)


class UploadState(Enum):
    """Lifecycle of an upload session."""
    PENDING = 'pending'
    UPLOADING = 'uploading'
    COMPLETED = 'completed'
    ABORTED = 'aborted'
    FAILED = 'failed'
    
    @property
    def is_final(self) -> bool:
        return self in (UploadState.COMPLETED, UploadState.ABORTED, UploadState.FAILED)


@dataclass
class UploadSession:
    """
    State of one file transfer.
    
    Owned by a single StreamUploadCoordinator; never shared between files.
    
    Attributes:
        field_name: Name of the form field
        original_name: Filename sent by the client
        bucket: Destination bucket
        key: Resolved object key (None until resolved)
        content_type: Resolved content type (None until resolved)
        server_side_encryption: Encryption mode for this upload
        bytes_written: Bytes forwarded to the storage client so far
        chunks_written: Chunks forwarded so far
        state: Current lifecycle state
        handle: Storage client upload handle once initiated
    """
    field_name: str
    original_name: Optional[str]
    bucket: str
    key: Optional[str] = None
    content_type: Optional[str] = None
    server_side_encryption: Optional[str] = None
    bytes_written: int = 0
    chunks_written: int = 0
    state: UploadState = UploadState.PENDING
    handle: Any = field(default=None, repr=False)
    
    def set_content_type(self, content_type: str) -> None:
        """Fix the content type; it cannot change once set."""
        if self.content_type is not None and self.content_type != content_type:
            raise ValueError(
                f"Content type already resolved to {self.content_type!r}"
            )
        self.content_type = content_type


@dataclass(frozen=True)
class CompletedUpload:
    """
    Storage client response to a finalize call.
    
    Attributes:
        etag: Entity tag of the stored object
        location: URL of the stored object
        version_id: Object version, when the bucket is versioned
    """
    etag: str
    location: str
    version_id: Optional[str] = None


@dataclass(frozen=True)
class UploadedFile:
    """
    Result of a successful upload.
    
    Attributes:
        field_name: Name of the form field
        original_name: Filename sent by the client
        encoding: Content-Transfer-Encoding of the part
        content_type: Content type stored with the object
        size: Number of bytes uploaded
        bucket: Bucket holding the object
        key: Object key
        location: URL of the object
        etag: Entity tag of the object
        acl: Canned ACL applied
        server_side_encryption: Encryption mode, when requested
        sse_kms_key_id: KMS key id, when requested
        storage_class: Storage class
        content_disposition: Content-Disposition stored with the object
        content_encoding: Content-Encoding stored with the object
        metadata: User metadata stored with the object
        version_id: Object version
    """
    field_name: str
    original_name: Optional[str]
    encoding: Optional[str]
    content_type: str
    size: int
    bucket: str
    key: str
    location: str
    etag: str
    acl: Optional[str] = None
    server_side_encryption: Optional[str] = None
    sse_kms_key_id: Optional[str] = None
    storage_class: Optional[str] = None
    content_disposition: Optional[str] = None
    content_encoding: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    version_id: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict, dropping unset fields."""
        return {
            name: value for name, value in asdict(self).items()
            if value is not None
        }


@dataclass
class UploadProgress:
    """
    Progress of one upload.
    
    Attributes:
        field_name: Name of the form field
        key: Object key
        bytes_written: Bytes forwarded so far
        chunks_written: Chunks forwarded so far
    """
    field_name: str
    key: str
    bytes_written: int = 0
    chunks_written: int = 0
