"""
Content-type sniffing.

Detection is a small ordered table of (predicate, MIME type) rules evaluated
against the leading bytes of a stream. The first matching rule wins and an
unrecognized sample maps to the default type. Filenames are never consulted.
"""
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from ..options.models import DEFAULT_CONTENT_TYPE

BOM_UTF8 = b'\xef\xbb\xbf'

# XML declaration, comments and doctype (with an optional internal subset)
# that may precede the root element of an SVG document
_XML_PROLOG = re.compile(
    rb'\s*(?:<\?xml[^>]*\?>\s*)?'
    rb'(?:(?:<!--.*?-->|<!DOCTYPE[^\[>]*(?:\[.*?\])?\s*>)\s*)*',
    re.DOTALL | re.IGNORECASE
)
_SVG_ROOT = re.compile(rb'<(?:[A-Za-z_][\w.-]*:)?svg[\s>/]')


@dataclass(frozen=True)
class SignatureRule:
    """
    A single detection rule.
    
    Attributes:
        mime_type: Type reported when the rule matches
        matches: Predicate over the sample bytes
        name: Short label used in logs and tests
    """
    mime_type: str
    matches: Callable[[bytes], bool]
    name: str = ''


def prefix(signature: bytes, offset: int = 0) -> Callable[[bytes], bool]:
    """Build a predicate matching ``signature`` at ``offset``."""
    end = offset + len(signature)
    
    def predicate(sample: bytes) -> bool:
        return sample[offset:end] == signature
    
    return predicate


def riff(form_type: bytes) -> Callable[[bytes], bool]:
    """Build a predicate for a RIFF container of the given form type."""
    def predicate(sample: bytes) -> bool:
        return sample[:4] == b'RIFF' and sample[8:12] == form_type
    
    return predicate


def ftyp(*brands: bytes) -> Callable[[bytes], bool]:
    """Build a predicate for ISO base media files with one of ``brands``."""
    def predicate(sample: bytes) -> bool:
        return sample[4:8] == b'ftyp' and sample[8:12] in brands
    
    return predicate


def iso_media(sample: bytes) -> bool:
    """Returns True for any ISO base media file (MP4, QuickTime, HEIF...)."""
    return sample[4:8] == b'ftyp'


def _strip_text(sample: bytes) -> bytes:
    if sample.startswith(BOM_UTF8):
        sample = sample[len(BOM_UTF8):]
    return sample.lstrip()


def is_bmp(sample: bytes) -> bool:
    # reserved header bytes are always zero
    return sample[:2] == b'BM' and sample[6:10] == b'\x00\x00\x00\x00'


def is_svg(sample: bytes) -> bool:
    """Returns True if the sample starts with an SVG document."""
    text = _strip_text(sample)
    prolog = _XML_PROLOG.match(text)
    rest = text[prolog.end():] if prolog else text
    return _SVG_ROOT.match(rest) is not None


def is_xml(sample: bytes) -> bool:
    return _strip_text(sample)[:5].lower() == b'<?xml'


def is_html(sample: bytes) -> bool:
    head = _strip_text(sample)[:14].lower()
    return head.startswith(b'<!doctype html') or head.startswith(b'<html')


DEFAULT_RULES: Tuple[SignatureRule, ...] = (
    SignatureRule('image/png', prefix(b'\x89PNG\r\n\x1a\n'), 'png'),
    SignatureRule('image/jpeg', prefix(b'\xff\xd8\xff'), 'jpeg'),
    SignatureRule('image/gif', prefix(b'GIF87a'), 'gif87a'),
    SignatureRule('image/gif', prefix(b'GIF89a'), 'gif89a'),
    SignatureRule('image/webp', riff(b'WEBP'), 'webp'),
    SignatureRule('image/bmp', is_bmp, 'bmp'),
    SignatureRule('image/tiff', prefix(b'II*\x00'), 'tiff-le'),
    SignatureRule('image/tiff', prefix(b'MM\x00*'), 'tiff-be'),
    SignatureRule('image/x-icon', prefix(b'\x00\x00\x01\x00'), 'ico'),
    SignatureRule('application/pdf', prefix(b'%PDF-'), 'pdf'),
    SignatureRule('application/zip', prefix(b'PK\x03\x04'), 'zip'),
    SignatureRule('application/gzip', prefix(b'\x1f\x8b\x08'), 'gzip'),
    SignatureRule('application/x-7z-compressed', prefix(b"7z\xbc\xaf'\x1c"), '7z'),
    SignatureRule('application/x-rar-compressed', prefix(b'Rar!\x1a\x07'), 'rar'),
    SignatureRule('application/wasm', prefix(b'\x00asm'), 'wasm'),
    SignatureRule('image/avif', ftyp(b'avif', b'avis'), 'avif'),
    SignatureRule('image/heic', ftyp(b'heic', b'heix', b'heim', b'heis'), 'heic'),
    SignatureRule('image/heif', ftyp(b'mif1', b'msf1'), 'heif'),
    SignatureRule('video/quicktime', ftyp(b'qt  '), 'quicktime'),
    SignatureRule('audio/mp4', ftyp(b'M4A '), 'm4a'),
    SignatureRule('video/mp4', iso_media, 'mp4'),
    SignatureRule('audio/mpeg', prefix(b'ID3'), 'mp3-id3'),
    SignatureRule('audio/mpeg', prefix(b'\xff\xfb'), 'mp3'),
    SignatureRule('audio/ogg', prefix(b'OggS'), 'ogg'),
    SignatureRule('audio/x-flac', prefix(b'fLaC'), 'flac'),
    SignatureRule('audio/wav', riff(b'WAVE'), 'wav'),
    SignatureRule('image/svg+xml', is_svg, 'svg'),
    SignatureRule('application/xml', is_xml, 'xml'),
    SignatureRule('text/html', is_html, 'html'),
)


class ContentSniffer:
    """
    Detects a MIME type from leading bytes.
    
    Example:
        >>> ContentSniffer().detect(b'\\x89PNG\\r\\n\\x1a\\n....')
        'image/png'
    """
    
    def __init__(
        self,
        rules: Optional[Iterable[SignatureRule]] = None,
        default: str = DEFAULT_CONTENT_TYPE
    ):
        """
        Initialize sniffer.
        
        Args:
            rules: Ordered rules, first match wins (DEFAULT_RULES if None)
            default: Type returned when no rule matches
        """
        self.rules: Tuple[SignatureRule, ...] = tuple(rules) if rules is not None else DEFAULT_RULES
        self.default = default
    
    def detect(self, sample: bytes) -> str:
        """
        Detect the MIME type of a sample.
        
        Args:
            sample: Leading bytes of the content (may be empty)
            
        Returns:
            Detected MIME type or the default
        """
        if not sample:
            return self.default
        
        for rule in self.rules:
            if rule.matches(sample):
                return rule.mime_type
        return self.default
