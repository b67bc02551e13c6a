"""
Option validation.

Runs once when the engine is constructed. Anything wrong with the options is
reported as a ConfigurationError before a single stream is touched, so the
upload path never re-checks types.
"""
from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Optional

from ..exceptions import ConfigurationError
from ..logging import get_logger
from ..upload.protocols import REQUIRED_CLIENT_METHODS
from .models import StorageOptions, AutoContentType, AUTO_CONTENT_TYPE
from .values import OptionValue, StaticValue, DynamicValue, to_option_value

logger = get_logger('options')

# Options that accept a string or a function returning a string
STRING_OPTIONS = (
    'acl',
    'server_side_encryption',
    'sse_kms_key_id',
    'storage_class',
    'content_disposition',
    'cache_control',
    'content_encoding',
)

KNOWN_OPTIONS = frozenset(
    ('client', 'bucket', 'key', 'content_type', 'metadata', 'encryption_modes')
    + STRING_OPTIONS
)


class OptionValidator:
    """
    Validates raw engine options.
    
    Responsibilities:
    - Reject unknown, missing and wrong-typed options
    - Wrap per-file options into StaticValue / DynamicValue
    - Produce an immutable StorageOptions
    """
    
    def validate(self, raw: Mapping) -> StorageOptions:
        """
        Validate raw options.
        
        Args:
            raw: Mapping of option name to value
            
        Returns:
            Validated StorageOptions
            
        Raises:
            ConfigurationError: If any option is invalid
        """
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                f"Options must be a mapping, got {type(raw).__name__}"
            )
        
        unknown = sorted(set(raw) - KNOWN_OPTIONS)
        if unknown:
            raise ConfigurationError(
                f"Unknown option(s): {', '.join(map(str, unknown))}",
                option=str(unknown[0])
            )
        
        client = self._validate_client(raw.get('client'))
        bucket = self._validate_bucket(raw.get('bucket'))
        
        values: Dict[str, Any] = {'client': client, 'bucket': bucket}
        
        if raw.get('key') is not None:
            values['key'] = self._validate_key(raw['key'])
        if raw.get('content_type') is not None:
            values['content_type'] = self._validate_content_type(raw['content_type'])
        if raw.get('metadata') is not None:
            values['metadata'] = self._validate_metadata(raw['metadata'])
        
        for name in STRING_OPTIONS:
            if raw.get(name) is not None:
                values[name] = self._validate_string_option(name, raw[name])
        
        encryption_modes = self._validate_encryption_modes(raw.get('encryption_modes'))
        values['encryption_modes'] = encryption_modes
        self._check_encryption_mode(values.get('server_side_encryption'), encryption_modes)
        
        options = StorageOptions(**values)
        logger.debug(f"Options validated for bucket {bucket!r}")
        return options
    
    def _validate_client(self, client: Any) -> Any:
        if client is None:
            raise ConfigurationError("Option 'client' is required", option='client')
        
        missing = [
            name for name in REQUIRED_CLIENT_METHODS
            if not callable(getattr(client, name, None))
        ]
        if missing:
            raise ConfigurationError(
                f"Storage client is missing method(s): {', '.join(missing)}",
                option='client'
            )
        return client
    
    def _validate_bucket(self, bucket: Any) -> str:
        if bucket is None:
            raise ConfigurationError("Option 'bucket' is required", option='bucket')
        if not isinstance(bucket, str):
            raise ConfigurationError(
                f"Expected bucket to be a string, got {type(bucket).__name__}",
                option='bucket'
            )
        if not bucket:
            raise ConfigurationError("Option 'bucket' must not be empty", option='bucket')
        return bucket
    
    def _validate_key(self, key: Any) -> OptionValue:
        if isinstance(key, DynamicValue):
            return key
        if not callable(key):
            raise ConfigurationError(
                f"Expected key to be a function, got {type(key).__name__}",
                option='key'
            )
        return DynamicValue(key)
    
    def _validate_content_type(self, content_type: Any):
        if isinstance(content_type, AutoContentType):
            return AUTO_CONTENT_TYPE
        if isinstance(content_type, (str, OptionValue)) or callable(content_type):
            return self._reject_empty('content_type', to_option_value(content_type))
        raise ConfigurationError(
            "Expected content_type to be AUTO_CONTENT_TYPE, a string or a function, "
            f"got {type(content_type).__name__}",
            option='content_type'
        )
    
    def _validate_string_option(self, name: str, value: Any) -> OptionValue:
        if isinstance(value, (str, OptionValue)) or callable(value):
            return self._reject_empty(name, to_option_value(value))
        raise ConfigurationError(
            f"Expected {name} to be a string or a function, got {type(value).__name__}",
            option=name
        )
    
    def _reject_empty(self, name: str, option: OptionValue) -> OptionValue:
        # Functions are checked when resolved
        if isinstance(option, StaticValue) and option.value == '':
            raise ConfigurationError(f"Option '{name}' must not be empty", option=name)
        return option
    
    def _validate_metadata(self, metadata: Any) -> OptionValue:
        if isinstance(metadata, OptionValue) or callable(metadata):
            return to_option_value(metadata)
        if not isinstance(metadata, Mapping):
            raise ConfigurationError(
                f"Expected metadata to be a mapping or a function, got {type(metadata).__name__}",
                option='metadata'
            )
        for name, value in metadata.items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise ConfigurationError(
                    f"Metadata entries must map strings to strings, got {name!r}: {value!r}",
                    option='metadata'
                )
        return StaticValue(dict(metadata))
    
    def _validate_encryption_modes(self, modes: Any) -> Optional[FrozenSet[str]]:
        if modes is None:
            return None
        if (
            not isinstance(modes, (set, frozenset, list, tuple))
            or not all(isinstance(m, str) for m in modes)
        ):
            raise ConfigurationError(
                "Expected encryption_modes to be a collection of strings",
                option='encryption_modes'
            )
        return frozenset(modes)
    
    def _check_encryption_mode(
        self,
        option: Optional[OptionValue],
        modes: Optional[FrozenSet[str]]
    ) -> None:
        # Dynamic values are checked when resolved
        if modes is None or not isinstance(option, StaticValue):
            return
        if option.value not in modes:
            raise ConfigurationError(
                f"Unsupported server_side_encryption {option.value!r}, "
                f"expected one of {sorted(modes)}",
                option='server_side_encryption'
            )
