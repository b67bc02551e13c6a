"""
Stream upload coordinator.

Pipes one file stream into a storage client multipart upload. Chunks are
forwarded in stream order and the next chunk is only pulled once the client
has accepted the previous one, so a slow backend slows down consumption of
the request body instead of filling memory.
"""
import asyncio
import time
from typing import Any, Optional

from ..content_type import ContentTypeResolver
from ..exceptions import OptionResolutionError, UploadError
from ..logging import get_logger
from ..options.models import StorageOptions
from ..stream import PeekableStream
from .models import (
    IncomingFile,
    UploadParams,
    UploadSession,
    UploadState,
    UploadedFile,
    UploadProgress,
    CompletedUpload,
)
from .params import UploadParamsBuilder
from .protocols import ProgressCallback

logger = get_logger('upload.coordinator')


class StreamUploadCoordinator:
    """
    Uploads exactly one file.

    A new coordinator is created for every file field, so concurrent uploads
    in the same request never share state. Only the read-only options (and
    the storage client they hold) are shared.

    Example:
        >>> coordinator = StreamUploadCoordinator(options)
        >>> result = await coordinator.run(request, incoming_file)
        >>> result.size, result.etag
    """

    def __init__(
        self,
        options: StorageOptions,
        params_builder: Optional[UploadParamsBuilder] = None,
        content_types: Optional[ContentTypeResolver] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize coordinator.

        Args:
            options: Validated engine options
            params_builder: Builder for key and object settings
            content_types: Content-type resolver
            progress_callback: Optional callback invoked after each chunk
        """
        self._options = options
        self._client = options.client
        self._params = params_builder or UploadParamsBuilder(options)
        self._content_types = content_types or ContentTypeResolver(options.content_type)
        self._progress_callback = progress_callback
        self._session: Optional[UploadSession] = None

    @property
    def session(self) -> Optional[UploadSession]:
        """Returns the session, once run() has started."""
        return self._session

    async def run(self, request: Any, file: IncomingFile) -> UploadedFile:
        """
        Upload a file stream end to end.

        Args:
            request: Request-scoped context passed to option functions
            file: File field handed over by the parser

        Returns:
            UploadedFile describing the stored object

        Raises:
            KeyResolutionError: If the key function fails
            ContentResolutionError: If the content-type function fails
            OptionResolutionError: If another option function fails
            UploadError: If the stream or the storage client fails
            RuntimeError: If the coordinator already ran
        """
        if self._session is not None:
            raise RuntimeError("Coordinator already ran; create one per file")

        session = UploadSession(
            field_name=file.field_name,
            original_name=file.original_name,
            bucket=self._options.bucket
        )
        self._session = session
        stream = PeekableStream(file.stream)

        try:
            return await self._run(request, file, session, stream)
        except BaseException:
            if not session.state.is_final:
                session.state = UploadState.FAILED
            raise
        finally:
            await self._close_stream(stream, session)

    async def _run(
        self,
        request: Any,
        file: IncomingFile,
        session: UploadSession,
        stream: PeekableStream
    ) -> UploadedFile:
        # Step 1: Resolve key and object settings
        params = await self._params.build(request, file)
        session.key = params.key
        session.server_side_encryption = params.server_side_encryption

        # Step 2: Resolve content type (may hold back the first chunk)
        try:
            content_type = await self._content_types.resolve(request, file, stream)
        except OptionResolutionError:
            raise
        except Exception as e:
            logger.error(f"Stream for field {file.field_name!r} failed before upload: {e}")
            raise UploadError(
                f"Stream failed before upload of {params.key!r} started",
                bucket=params.bucket,
                key=params.key,
                cause=e
            ) from e
        session.set_content_type(content_type)
        params = params.with_content_type(content_type)

        # Step 3: Initiate upload
        logger.info(
            f"Starting upload: field {file.field_name!r} -> "
            f"{params.bucket}/{params.key} ({content_type})"
        )
        start_time = time.time()
        # Shielded so a cancelled caller still learns the handle it must abort
        creating = asyncio.ensure_future(self._client.create_upload(params))
        try:
            session.handle = await asyncio.shield(creating)
        except asyncio.CancelledError:
            logger.warning(f"Upload of {params.key!r} cancelled while initiating, aborting")
            session.handle = await self._settle(creating)
            if session.handle is not None:
                await self._abort(session)
            raise
        except Exception as e:
            logger.error(f"Failed to initiate upload of {params.key!r}: {e}")
            raise UploadError(
                f"Failed to initiate upload of {params.key!r}",
                bucket=params.bucket,
                key=params.key,
                cause=e
            ) from e
        session.state = UploadState.UPLOADING

        # Step 4: Forward chunks
        try:
            await self._forward_chunks(session, stream)
        except asyncio.CancelledError:
            logger.warning(f"Upload of {params.key!r} cancelled, aborting")
            await self._abort(session)
            raise
        except Exception as e:
            logger.error(
                f"Upload of {params.key!r} failed after {session.bytes_written} bytes: {e}"
            )
            await self._abort(session)
            raise UploadError(
                f"Upload of {params.key!r} failed",
                bucket=params.bucket,
                key=params.key,
                cause=e
            ) from e

        # Step 5: Finalize
        completing = asyncio.ensure_future(self._client.complete_upload(session.handle))
        try:
            completed = await asyncio.shield(completing)
        except asyncio.CancelledError:
            logger.warning(f"Upload of {params.key!r} cancelled while finalizing, discarding")
            await self._discard(session, completing)
            raise
        except Exception as e:
            logger.error(f"Failed to finalize upload of {params.key!r}: {e}")
            await self._abort(session)
            raise UploadError(
                f"Upload of {params.key!r} failed",
                bucket=params.bucket,
                key=params.key,
                cause=e
            ) from e

        session.state = UploadState.COMPLETED
        elapsed = time.time() - start_time
        logger.info(
            f"Upload completed: {params.bucket}/{params.key} "
            f"({session.bytes_written} bytes in {elapsed:.2f}s)"
        )
        return self._build_result(file, session, params, completed)

    async def _forward_chunks(self, session: UploadSession, stream: PeekableStream) -> None:
        """Send every chunk to the storage client, in order, one at a time."""
        progress = UploadProgress(field_name=session.field_name, key=session.key)

        async for chunk in stream:
            await self._client.write_chunk(session.handle, chunk)
            session.bytes_written += len(chunk)
            session.chunks_written += 1
            logger.debug(
                f"Chunk {session.chunks_written} of {session.key!r} written "
                f"({len(chunk)} bytes, {session.bytes_written} total)"
            )

            if self._progress_callback:
                progress.bytes_written = session.bytes_written
                progress.chunks_written = session.chunks_written
                self._progress_callback(progress)

    async def _abort(self, session: UploadSession) -> None:
        """Abort the remote upload; failures are logged, not raised."""
        session.state = UploadState.ABORTED
        try:
            await self._client.abort_upload(session.handle)
            logger.debug(f"Aborted upload of {session.key!r}")
        except Exception as e:
            logger.warning(f"Failed to abort upload of {session.key!r}: {e}")

    async def _settle(self, future: "asyncio.Future[Any]") -> Any:
        """Wait for a shielded call to finish; returns None if it failed."""
        try:
            return await future
        except Exception as e:
            logger.debug(f"Shielded storage call failed after cancellation: {e}")
            return None

    async def _discard(self, session: UploadSession, completing: "asyncio.Future[Any]") -> None:
        """
        Undo a finalize call the caller stopped waiting for.

        If the object got stored it is deleted again; when that delete fails
        the session stays COMPLETED so the caller can still remove it.
        """
        if await self._settle(completing) is None:
            await self._abort(session)
            return

        session.state = UploadState.COMPLETED
        try:
            await self._client.delete_object(session.bucket, session.key)
        except Exception as e:
            logger.warning(f"Failed to delete {session.bucket}/{session.key} after cancellation: {e}")
            return
        session.state = UploadState.ABORTED
        logger.debug(f"Deleted {session.bucket}/{session.key} after cancellation")

    async def _close_stream(self, stream: PeekableStream, session: UploadSession) -> None:
        try:
            await stream.aclose()
        except Exception as e:
            logger.warning(f"Failed to close stream of field {session.field_name!r}: {e}")

    def _build_result(
        self,
        file: IncomingFile,
        session: UploadSession,
        params: UploadParams,
        completed: CompletedUpload
    ) -> UploadedFile:
        return UploadedFile(
            field_name=file.field_name,
            original_name=file.original_name,
            encoding=file.encoding,
            content_type=session.content_type,
            size=session.bytes_written,
            bucket=params.bucket,
            key=params.key,
            location=completed.location,
            etag=completed.etag,
            acl=params.acl,
            server_side_encryption=params.server_side_encryption,
            sse_kms_key_id=params.sse_kms_key_id,
            storage_class=params.storage_class,
            content_disposition=params.content_disposition,
            content_encoding=params.content_encoding,
            metadata=dict(params.metadata),
            version_id=completed.version_id
        )
