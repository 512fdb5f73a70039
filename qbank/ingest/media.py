import re
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

IMAGE_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'svg': 'image/svg+xml',
    'bmp': 'image/bmp',
    'tiff': 'image/tiff',
    'ico': 'image/x-icon',
}

AUDIO_TYPES = {
    'mp3': 'audio/mpeg',
    'wav': 'audio/wav',
    'ogg': 'audio/ogg',
    'm4a': 'audio/mp4',
    'aac': 'audio/aac',
    'flac': 'audio/flac',
}

# Hosts that serve media behind extension-less URLs
IMAGE_HOST_PATTERNS = [
    re.compile(r'(^|\.)imgur\.com$'),
    re.compile(r'(^|\.)ibb\.co$'),
    re.compile(r'(^|\.)postimg\.cc$'),
    re.compile(r'(^|\.)googleusercontent\.com$'),
]
AUDIO_HOST_PATTERNS = [
    re.compile(r'(^|\.)soundcloud\.com$'),
    re.compile(r'(^|\.)vocaroo\.com$'),
    re.compile(r'(^|\.)voca\.ro$'),
]

_URL_PATTERN = re.compile(r'https?://[^\s<>"\']+', re.IGNORECASE)
_TRAILING_PUNCTUATION = '.,;:!?)]}'


class MediaExtraction(NamedTuple):
    cleaned_text: str
    media_url: Optional[str] = None
    media_type: Optional[str] = None


def _extension(path: str) -> str:
    last = path.rsplit('/', 1)[-1]
    if '.' not in last:
        return ''
    return last.rsplit('.', 1)[-1].lower()


def classify_media_url(url: str) -> Optional[str]:
    """Return the media type of ``url`` if it looks like an image or audio reference."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    ext = _extension(parts.path)
    if ext in IMAGE_TYPES:
        return IMAGE_TYPES[ext]
    if ext in AUDIO_TYPES:
        return AUDIO_TYPES[ext]

    host = (parts.hostname or '').lower()
    if any(p.search(host) for p in IMAGE_HOST_PATTERNS):
        return 'image'
    if any(p.search(host) for p in AUDIO_HOST_PATTERNS):
        return 'audio'
    return None


def extract_media(text) -> MediaExtraction:
    """
    Pull the first image/audio URL out of a question text cell.

    The reference is removed and whitespace collapsed. When nothing is found
    the trimmed input comes back untouched.
    """
    raw = str(text or '')
    for match in _URL_PATTERN.finditer(raw):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        media_type = classify_media_url(url)
        if not media_type:
            continue

        start = match.start()
        end = start + len(url)
        cleaned = raw[:start] + ' ' + raw[end:]
        cleaned = re.sub(r'\s+', ' ', cleaned).strip()
        return MediaExtraction(cleaned, url, media_type)

    return MediaExtraction(raw.strip())


def guess_media_type(value) -> Optional[str]:
    """Classify an explicit image column value (URL or data URI)."""
    raw = str(value or '').strip()
    if not raw:
        return None
    if raw.startswith('data:'):
        return raw[5:].split(';', 1)[0] or 'image'
    return classify_media_url(raw) or 'image'
