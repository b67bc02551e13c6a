"""
S3 storage engine.

Entry point used by form handling code: validate options once, then upload
each file field as it is parsed and remove files when a request fails.
"""
from typing import Any, Optional, Union

from .core.exceptions import RemovalError
from .core.logging import get_logger
from .core.options import OptionValidator, StorageOptions
from .core.upload import (
    IncomingFile,
    ProgressCallback,
    RemovalHandler,
    StreamUploadCoordinator,
    UploadedFile,
    UploadSession,
)

logger = get_logger('storage')


class S3Storage:
    """
    Storage engine uploading form file fields to S3-compatible storage.
    
    Options are validated here, once; a ConfigurationError is raised before
    any upload can start. The engine itself holds no per-upload state and
    can serve any number of concurrent requests.
    
    Example:
        >>> storage = S3Storage(
        ...     client=Boto3StorageClient(boto3.client('s3')),
        ...     bucket='uploads',
        ...     content_type=AUTO_CONTENT_TYPE,
        ...     server_side_encryption='AES256'
        ... )
        >>> result = await storage.handle_file(request, incoming_file)
        >>> print(result.location)
    """
    
    def __init__(self, **options: Any):
        """
        Initialize storage engine.
        
        Args:
            **options: client, bucket, key, content_type, acl,
                server_side_encryption, sse_kms_key_id, storage_class,
                content_disposition, cache_control, content_encoding,
                metadata, encryption_modes
            
        Raises:
            ConfigurationError: If options are missing or wrong-typed
        """
        self._options = OptionValidator().validate(options)
        self._removal = RemovalHandler(self._options.client)
    
    @property
    def options(self) -> StorageOptions:
        """Returns the validated options."""
        return self._options
    
    @property
    def bucket(self) -> str:
        return self._options.bucket
    
    def create_coordinator(
        self,
        progress_callback: Optional[ProgressCallback] = None
    ) -> StreamUploadCoordinator:
        """
        Create a coordinator for one file.
        
        Useful when the caller needs the in-flight session (for instance to
        abort it through remove_file while it is still uploading).
        """
        return StreamUploadCoordinator(self._options, progress_callback=progress_callback)
    
    async def handle_file(
        self,
        request: Any,
        file: IncomingFile,
        progress_callback: Optional[ProgressCallback] = None
    ) -> UploadedFile:
        """
        Upload one file field.
        
        Args:
            request: Request-scoped context passed to option functions
            file: File field handed over by the parser
            progress_callback: Optional callback invoked after each chunk
            
        Returns:
            UploadedFile describing the stored object
            
        Raises:
            KeyResolutionError: If the key function fails
            ContentResolutionError: If the content-type function fails
            OptionResolutionError: If another option function fails
            UploadError: If the stream or the storage client fails
        """
        coordinator = self.create_coordinator(progress_callback)
        return await coordinator.run(request, file)
    
    async def remove_file(
        self,
        request: Any,
        file: Union[UploadedFile, UploadSession]
    ) -> Optional[RemovalError]:
        """
        Remove a previously uploaded (or in-flight) file.
        
        Never raises: a failed cleanup is logged and returned.
        
        Args:
            request: Request-scoped context (unused, kept for symmetry)
            file: UploadedFile, or the UploadSession of an in-flight upload
            
        Returns:
            None on success, RemovalError on failure
        """
        return await self._removal.remove(file)
