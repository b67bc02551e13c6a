"""
Removal of uploaded or in-flight files.

Used when a request fails after some of its files were already stored.
Cleanup is best-effort: failures are logged and handed back as a
RemovalError value instead of being raised.
"""
from typing import Any, Optional, Union

from ..exceptions import RemovalError
from ..logging import get_logger
from .models import UploadedFile, UploadSession, UploadState

logger = get_logger('upload.removal')


class RemovalHandler:
    """
    Deletes stored objects and aborts in-flight uploads.
    
    Responsibilities:
    - Delete the object behind an UploadedFile
    - Abort (or delete, once completed) the upload behind an UploadSession
    - Report failures without raising
    """
    
    def __init__(self, client: Any):
        """
        Initialize removal handler.
        
        Args:
            client: Storage client implementing StorageClientProtocol
        """
        self._client = client
    
    async def remove(self, target: Union[UploadedFile, UploadSession]) -> Optional[RemovalError]:
        """
        Remove a file from storage.
        
        Args:
            target: Result of a finished upload, or the session of an
                upload that may still be in flight
            
        Returns:
            None on success (or when there is nothing to remove),
            RemovalError describing the failure otherwise
        """
        if isinstance(target, UploadSession):
            return await self._remove_session(target)
        return await self.remove_object(target.bucket, target.key)
    
    async def _remove_session(self, session: UploadSession) -> Optional[RemovalError]:
        if session.state is UploadState.COMPLETED:
            return await self.remove_object(session.bucket, session.key)
        
        if session.state is not UploadState.UPLOADING or session.handle is None:
            # Nothing was stored: not started yet, failed before initiate or already aborted
            logger.debug(f"Nothing to remove for field {session.field_name!r} ({session.state.value})")
            return None
        
        try:
            await self._client.abort_upload(session.handle)
        except Exception as e:
            return self._report(
                f"Failed to abort upload of {session.key!r}", session.bucket, session.key, e
            )
        session.state = UploadState.ABORTED
        logger.info(f"Aborted in-flight upload of {session.bucket}/{session.key}")
        return None
    
    async def remove_object(self, bucket: str, key: Optional[str]) -> Optional[RemovalError]:
        """Delete an object by bucket and key, reporting failures."""
        try:
            await self._client.delete_object(bucket, key)
        except Exception as e:
            return self._report(f"Failed to remove {bucket}/{key}", bucket, key, e)
        logger.info(f"Removed {bucket}/{key}")
        return None
    
    def _report(
        self,
        message: str,
        bucket: Optional[str],
        key: Optional[str],
        cause: Exception
    ) -> RemovalError:
        error = RemovalError(message, bucket=bucket, key=key, cause=cause)
        error.__cause__ = cause
        logger.warning(f"{message}: {cause}")
        return error
