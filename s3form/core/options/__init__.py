"""Engine options: models, option values and validation."""
from .models import (
    StorageOptions,
    AutoContentType,
    AUTO_CONTENT_TYPE,
    DEFAULT_CONTENT_TYPE,
    SSE_AES256,
    SSE_KMS,
    SSE_KMS_DSSE,
    KNOWN_ENCRYPTION_MODES,
    random_key,
)
from .values import OptionValue, StaticValue, DynamicValue, to_option_value
from .validator import OptionValidator

__all__ = [
    'StorageOptions',
    'AutoContentType',
    'AUTO_CONTENT_TYPE',
    'DEFAULT_CONTENT_TYPE',
    'SSE_AES256',
    'SSE_KMS',
    'SSE_KMS_DSSE',
    'KNOWN_ENCRYPTION_MODES',
    'random_key',
    'OptionValue',
    'StaticValue',
    'DynamicValue',
    'to_option_value',
    'OptionValidator',
]
