"""
aiohttp integration.

Reads a multipart/form-data request body with aiohttp's MultipartReader and
hands every file part to the storage engine while it is being received.
Text fields are collected as strings. If anything fails, the files already
stored for the request are removed before the error propagates.
"""
from dataclasses import dataclass, field
from typing import Optional

from aiohttp import BodyPartReader, hdrs, web
from multidict import MultiDict

from ..core.exceptions import S3FormError
from ..core.logging import get_logger
from ..core.stream import iter_chunks, DEFAULT_CHUNK_SIZE
from ..core.upload.models import IncomingFile, UploadedFile
from ..storage import S3Storage

logger = get_logger('integrations.aiohttp')


class FormError(S3FormError):
    """Raised when the form body cannot be accepted."""
    pass


@dataclass
class FormResult:
    """
    Parsed form.
    
    Attributes:
        fields: Text fields by name
        files: Uploaded files by field name
    """
    fields: MultiDict = field(default_factory=MultiDict)
    files: MultiDict = field(default_factory=MultiDict)
    
    def file(self, name: str) -> Optional[UploadedFile]:
        """Returns the first file uploaded under ``name``."""
        return self.files.get(name)


async def receive_form(
    request: web.Request,
    storage: S3Storage,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_files: Optional[int] = None
) -> FormResult:
    """
    Parse a multipart form, streaming file parts into storage.
    
    Args:
        request: Incoming aiohttp request
        storage: Storage engine for file parts
        chunk_size: Size of reads from each file part
        max_files: Maximum number of file parts accepted
        
    Returns:
        FormResult with text fields and uploaded files
        
    Raises:
        FormError: If the body is not an acceptable multipart form
        S3FormError: Errors from the storage engine
    """
    result = FormResult()
    uploaded = []
    
    if request.content_type != 'multipart/form-data':
        raise FormError(f"Expected multipart/form-data, got {request.content_type!r}")
    
    try:
        reader = await request.multipart()
    except (AssertionError, KeyError, ValueError) as e:
        # aiohttp rejects a missing or malformed boundary this way
        raise FormError(f"Malformed multipart body: {e!r}") from e
    
    try:
        async for part in reader:
            if not isinstance(part, BodyPartReader):
                raise FormError("Nested multipart bodies are not supported")
            
            if part.filename is None:
                result.fields.add(part.name or '', await part.text())
                continue
            
            if max_files is not None and len(uploaded) >= max_files:
                raise FormError(f"Too many files, at most {max_files} accepted")
            
            incoming = IncomingFile(
                field_name=part.name or '',
                original_name=part.filename,
                stream=iter_chunks(part, chunk_size),
                encoding=part.headers.get(hdrs.CONTENT_TRANSFER_ENCODING),
                mime_type=part.headers.get(hdrs.CONTENT_TYPE)
            )
            uploaded_file = await storage.handle_file(request, incoming)
            uploaded.append(uploaded_file)
            result.files.add(uploaded_file.field_name, uploaded_file)
    except BaseException:
        await _remove_uploaded(request, storage, uploaded)
        raise
    
    logger.debug(f"Form received: {len(result.fields)} fields, {len(uploaded)} files")
    return result


async def _remove_uploaded(request: web.Request, storage: S3Storage, uploaded) -> None:
    if uploaded:
        logger.info(f"Removing {len(uploaded)} file(s) of failed request")
    for uploaded_file in uploaded:
        # Failures are logged by the removal handler
        await storage.remove_file(request, uploaded_file)
