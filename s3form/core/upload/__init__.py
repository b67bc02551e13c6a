"""
Upload module.

Streams form file fields into object storage: one coordinator per file,
sharing only the validated engine options.
"""
from .models import (
    IncomingFile,
    UploadParams,
    UploadSession,
    UploadState,
    CompletedUpload,
    UploadedFile,
    UploadProgress,
)
from .protocols import (
    StorageClientProtocol,
    ByteStream,
    ProgressCallback,
    REQUIRED_CLIENT_METHODS,
)
from .params import UploadParamsBuilder
from .coordinator import StreamUploadCoordinator
from .removal import RemovalHandler

__all__ = [
    # Main classes
    'StreamUploadCoordinator',
    'UploadParamsBuilder',
    'RemovalHandler',
    
    # Models
    'IncomingFile',
    'UploadParams',
    'UploadSession',
    'UploadState',
    'CompletedUpload',
    'UploadedFile',
    'UploadProgress',
    
    # Protocols
    'StorageClientProtocol',
    'ByteStream',
    'ProgressCallback',
    'REQUIRED_CLIENT_METHODS',
]
