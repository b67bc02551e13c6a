"""
Content-type resolution.

Three modes are supported:
- fixed: the configured string is used as-is
- auto: the first chunk of the stream is sniffed
- function: ``content_type(request, file)`` is awaited
"""
from typing import Any, Optional, Union

from ..exceptions import ContentResolutionError
from ..logging import get_logger
from ..options.models import AutoContentType
from ..options.values import OptionValue
from ..stream import PeekableStream
from .sniffing import ContentSniffer

logger = get_logger('content_type')


class ContentTypeResolver:
    """
    Resolves the MIME type attached to an uploaded object.
    
    Holds back at most the first chunk of the stream (through
    PeekableStream.peek) and never reads further ahead.
    """
    
    def __init__(
        self,
        option: Union[OptionValue, AutoContentType],
        sniffer: Optional[ContentSniffer] = None
    ):
        """
        Initialize resolver.
        
        Args:
            option: Content-type option from StorageOptions
            sniffer: Sniffer used in auto mode
        """
        self._option = option
        self._sniffer = sniffer or ContentSniffer()
    
    @property
    def is_auto(self) -> bool:
        return isinstance(self._option, AutoContentType)
    
    async def resolve(self, request: Any, file: Any, stream: PeekableStream) -> str:
        """
        Resolve the content type for one file.
        
        Args:
            request: Request-scoped context passed to option functions
            file: IncomingFile being uploaded
            stream: Peekable view of the file stream
            
        Returns:
            MIME type string
            
        Raises:
            ContentResolutionError: If a content-type function fails
            Exception: Errors raised by the stream while peeking propagate
        """
        if self.is_auto:
            sample = await stream.peek()
            content_type = self._sniffer.detect(sample)
            logger.debug(
                f"Detected {content_type} for field {file.field_name!r} "
                f"from {len(sample)} leading bytes"
            )
            return content_type
        
        try:
            content_type = await self._option.resolve(request, file)
        except Exception as e:
            raise ContentResolutionError(
                f"Content type function failed for field {file.field_name!r}",
                option='content_type',
                field_name=file.field_name,
                cause=e
            ) from e
        
        if not isinstance(content_type, str) or not content_type:
            raise ContentResolutionError(
                f"Content type for field {file.field_name!r} must be a non-empty string, "
                f"got {content_type!r}",
                option='content_type',
                field_name=file.field_name
            )
        return content_type
