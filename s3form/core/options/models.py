"""
Engine option models.

The validated configuration is immutable and shared by every upload the
engine runs.
"""
import secrets
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Union

from .values import OptionValue, StaticValue, DynamicValue


DEFAULT_CONTENT_TYPE = 'application/octet-stream'

# Server-side encryption tokens understood by S3. They are passed through
# opaquely unless StorageOptions.encryption_modes restricts them.
SSE_AES256 = 'AES256'
SSE_KMS = 'aws:kms'
SSE_KMS_DSSE = 'aws:kms:dsse'
KNOWN_ENCRYPTION_MODES = frozenset({SSE_AES256, SSE_KMS, SSE_KMS_DSSE})


class AutoContentType:
    """Sentinel type selecting content-type detection from the stream."""
    
    _instance = None
    
    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance
    
    def __repr__(self) -> str:
        return 'AUTO_CONTENT_TYPE'
    
    def __reduce__(self):
        return (AutoContentType, ())


AUTO_CONTENT_TYPE = AutoContentType()


def random_key(request: Any, file: Any) -> str:
    """Default key function: 32 random hex characters."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class StorageOptions:
    """
    Validated engine configuration.
    
    Attributes:
        client: Storage client implementing StorageClientProtocol
        bucket: Destination bucket
        key: Object key option (function by default)
        content_type: Content-type option or AUTO_CONTENT_TYPE
        acl: Canned ACL option
        server_side_encryption: Server-side encryption mode option
        sse_kms_key_id: KMS key id option for aws:kms encryption
        storage_class: Storage class option
        content_disposition: Content-Disposition option
        cache_control: Cache-Control option
        content_encoding: Content-Encoding option
        metadata: User metadata option (mapping of strings)
        encryption_modes: Allowed encryption tokens, None for pass-through
    """
    client: Any
    bucket: str
    key: OptionValue = DynamicValue(random_key)
    content_type: Union[OptionValue, AutoContentType] = StaticValue(DEFAULT_CONTENT_TYPE)
    acl: Optional[OptionValue] = None
    server_side_encryption: Optional[OptionValue] = None
    sse_kms_key_id: Optional[OptionValue] = None
    storage_class: Optional[OptionValue] = None
    content_disposition: Optional[OptionValue] = None
    cache_control: Optional[OptionValue] = None
    content_encoding: Optional[OptionValue] = None
    metadata: Optional[OptionValue] = None
    encryption_modes: Optional[FrozenSet[str]] = None
    
    @property
    def auto_content_type(self) -> bool:
        """Returns True if content type is detected from the stream."""
        return self.content_type is AUTO_CONTENT_TYPE
