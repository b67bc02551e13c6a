"""
Upload parameter building.

Resolves the key and every per-file object setting before the storage client
is contacted, since initiating a multipart upload requires all of them.
"""
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ..exceptions import KeyResolutionError, OptionResolutionError
from ..logging import get_logger
from ..options.models import StorageOptions
from ..options.values import OptionValue
from .models import IncomingFile, UploadParams

logger = get_logger('upload.params')

# UploadParams fields resolved from string options, in resolution order
STRING_PARAMS = (
    'acl',
    'server_side_encryption',
    'sse_kms_key_id',
    'storage_class',
    'content_disposition',
    'cache_control',
    'content_encoding',
)


class UploadParamsBuilder:
    """
    Builds UploadParams for one file from the engine options.
    
    The key is resolved first; a key failure stops the build before any
    other option function runs.
    """
    
    def __init__(self, options: StorageOptions):
        self._options = options
    
    async def build(self, request: Any, file: IncomingFile) -> UploadParams:
        """
        Resolve key and object settings for a file.
        
        Args:
            request: Request-scoped context passed to option functions
            file: File being uploaded
            
        Returns:
            UploadParams without a content type
            
        Raises:
            KeyResolutionError: If the key function fails
            OptionResolutionError: If another option function fails
        """
        key = await self._resolve_key(request, file)
        
        values: Dict[str, Any] = {}
        for name in STRING_PARAMS:
            values[name] = await self._resolve_string(
                name, getattr(self._options, name), request, file
            )
        
        self._check_encryption_mode(values['server_side_encryption'], file)
        metadata = await self._resolve_metadata(request, file)
        
        logger.debug(f"Resolved key {key!r} for field {file.field_name!r}")
        return UploadParams(
            bucket=self._options.bucket,
            key=key,
            metadata=metadata,
            **values
        )
    
    async def _resolve_key(self, request: Any, file: IncomingFile) -> str:
        try:
            key = await self._options.key.resolve(request, file)
        except Exception as e:
            raise KeyResolutionError(
                f"Key function failed for field {file.field_name!r}",
                option='key',
                field_name=file.field_name,
                cause=e
            ) from e
        
        if not isinstance(key, str) or not key:
            raise KeyResolutionError(
                f"Key for field {file.field_name!r} must be a non-empty string, got {key!r}",
                option='key',
                field_name=file.field_name
            )
        return key
    
    async def _resolve_string(
        self,
        name: str,
        option: Optional[OptionValue],
        request: Any,
        file: IncomingFile
    ) -> Optional[str]:
        if option is None:
            return None
        
        value = await self._resolve(name, option, request, file)
        if value is not None and not isinstance(value, str):
            raise OptionResolutionError(
                f"Option {name!r} must resolve to a string, got {type(value).__name__}",
                option=name,
                field_name=file.field_name
            )
        return value
    
    async def _resolve_metadata(self, request: Any, file: IncomingFile) -> Dict[str, str]:
        if self._options.metadata is None:
            return {}
        
        metadata = await self._resolve('metadata', self._options.metadata, request, file)
        if metadata is None:
            return {}
        if not isinstance(metadata, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in metadata.items()
        ):
            raise OptionResolutionError(
                "Option 'metadata' must resolve to a mapping of strings",
                option='metadata',
                field_name=file.field_name
            )
        return dict(metadata)
    
    async def _resolve(
        self,
        name: str,
        option: OptionValue,
        request: Any,
        file: IncomingFile
    ) -> Any:
        try:
            return await option.resolve(request, file)
        except Exception as e:
            raise OptionResolutionError(
                f"Option {name!r} failed for field {file.field_name!r}",
                option=name,
                field_name=file.field_name,
                cause=e
            ) from e
    
    def _check_encryption_mode(self, mode: Optional[str], file: IncomingFile) -> None:
        modes = self._options.encryption_modes
        if mode is None or modes is None or mode in modes:
            return
        raise OptionResolutionError(
            f"Unsupported server_side_encryption {mode!r}, expected one of {sorted(modes)}",
            option='server_side_encryption',
            field_name=file.field_name
        )
