"""Content-type resolution and sniffing."""
from .sniffing import ContentSniffer, SignatureRule, DEFAULT_RULES
from .resolver import ContentTypeResolver

__all__ = [
    'ContentSniffer',
    'SignatureRule',
    'DEFAULT_RULES',
    'ContentTypeResolver',
]
