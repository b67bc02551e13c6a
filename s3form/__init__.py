"""
s3form - Stream multipart form files straight into S3-compatible storage.

Usage:
    >>> from s3form import S3Storage, AUTO_CONTENT_TYPE
    >>> from s3form.integrations import Boto3StorageClient
    >>> 
    >>> storage = S3Storage(
    ...     client=Boto3StorageClient(boto3.client('s3')),
    ...     bucket='uploads',
    ...     content_type=AUTO_CONTENT_TYPE
    ... )
    >>> result = await storage.handle_file(request, incoming_file)
"""
import logging

from .storage import S3Storage

from .core.exceptions import (
    S3FormError,
    ConfigurationError,
    OptionResolutionError,
    KeyResolutionError,
    ContentResolutionError,
    UploadError,
    RemovalError,
)
from .core.options import (
    StorageOptions,
    AUTO_CONTENT_TYPE,
    DEFAULT_CONTENT_TYPE,
    SSE_AES256,
    SSE_KMS,
    SSE_KMS_DSSE,
    KNOWN_ENCRYPTION_MODES,
    StaticValue,
    DynamicValue,
)
from .core.content_type import ContentSniffer, SignatureRule
from .core.stream import iter_chunks, file_stream
from .core.upload import (
    IncomingFile,
    UploadParams,
    UploadSession,
    UploadState,
    CompletedUpload,
    UploadedFile,
    UploadProgress,
    StorageClientProtocol,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for s3form modules.
    
    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        's3form',
        's3form.storage',
        's3form.options',
        's3form.content_type',
        's3form.upload.params',
        's3form.upload.coordinator',
        's3form.upload.removal',
        's3form.integrations.boto3',
        's3form.integrations.aiohttp',
    ]
    
    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'S3Storage',
    'setup_logging',
    
    # Errors
    'S3FormError',
    'ConfigurationError',
    'OptionResolutionError',
    'KeyResolutionError',
    'ContentResolutionError',
    'UploadError',
    'RemovalError',
    
    # Options
    'StorageOptions',
    'AUTO_CONTENT_TYPE',
    'DEFAULT_CONTENT_TYPE',
    'SSE_AES256',
    'SSE_KMS',
    'SSE_KMS_DSSE',
    'KNOWN_ENCRYPTION_MODES',
    'StaticValue',
    'DynamicValue',
    
    # Content type
    'ContentSniffer',
    'SignatureRule',
    
    # Streams
    'iter_chunks',
    'file_stream',
    
    # Models
    'IncomingFile',
    'UploadParams',
    'UploadSession',
    'UploadState',
    'CompletedUpload',
    'UploadedFile',
    'UploadProgress',
    'StorageClientProtocol',
]
