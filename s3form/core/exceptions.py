"""
Custom exceptions for s3form.

Every error raised by the engine derives from S3FormError. Configuration
problems are raised synchronously at construction time; everything else
surfaces from the per-file upload coroutine.
"""
from typing import Optional, Dict, Any


class S3FormError(Exception):
    """Base exception for all s3form errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            details: Extra context (bucket, key, field name...)
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(S3FormError, TypeError):
    """Raised when engine options are missing or have the wrong type."""
    
    def __init__(self, message: str, option: Optional[str] = None) -> None:
        self.option = option
        super().__init__(message, {'option': option} if option else None)


class OptionResolutionError(S3FormError):
    """Raised when a per-file option function fails."""
    
    def __init__(
        self,
        message: str,
        option: str,
        field_name: Optional[str] = None,
        cause: Optional[BaseException] = None
    ) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            option: Name of the option being resolved
            field_name: Form field of the file being uploaded
            cause: Exception raised by the option function
        """
        self.option = option
        self.field_name = field_name
        self.cause = cause
        super().__init__(message, {'option': option, 'field_name': field_name})


class KeyResolutionError(OptionResolutionError):
    """Raised when the key function fails or returns a non-string."""
    pass


class ContentResolutionError(OptionResolutionError):
    """Raised when a custom content-type function fails."""
    pass


class UploadError(S3FormError):
    """Raised when streaming a file to storage fails.
    
    Wraps failures of the incoming stream as well as storage client errors
    from initiate, write and finalize calls. The remote upload has already
    been aborted when this is raised.
    """
    
    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None
    ) -> None:
        self.bucket = bucket
        self.key = key
        self.cause = cause
        super().__init__(message, {'bucket': bucket, 'key': key})
    
    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class RemovalError(S3FormError):
    """Reported (not raised) when best-effort cleanup of an object fails."""
    
    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None
    ) -> None:
        self.bucket = bucket
        self.key = key
        self.cause = cause
        super().__init__(message, {'bucket': bucket, 'key': key})
