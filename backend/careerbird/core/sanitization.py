"""
Input sanitization for user-supplied profile, grant and upload text.
"""

import bleach
import re
from urllib.parse import urlparse
from typing import Iterable, List

# Grant descriptions and bios allow light formatting
ALLOWED_TAGS = ['p', 'br', 'strong', 'em', 'ul', 'ol', 'li', 'a']

ALLOWED_ATTRIBUTES = {
    'a': ['href', 'title'],
}

# Application links are rendered as outbound buttons
ALLOWED_SCHEMES = ['http', 'https']

MAX_URL_LENGTH = 2048
MAX_TAG_LENGTH = 80
MAX_FILENAME_LENGTH = 120


def sanitize_html(text: str) -> str:
    """
    Sanitize rich text (bios, grant descriptions) to prevent XSS.

    Args:
        text: HTML string to sanitize

    Returns:
        Sanitized HTML string
    """
    if not text:
        return ""

    return bleach.clean(
        text,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_SCHEMES,
        strip=True
    )


def sanitize_text(text: str) -> str:
    """Strip all HTML from a plain text field and trim whitespace."""
    if not text:
        return ""

    return bleach.clean(text, tags=[], strip=True).strip()


def sanitize_tags(values: Iterable[str]) -> List[str]:
    """
    Clean a collection of free-text tags (research interests, fields, countries).

    Empty entries and case-insensitive duplicates are dropped; first spelling wins.
    """
    cleaned = []
    seen = set()
    for value in values or []:
        tag = sanitize_text(str(value))[:MAX_TAG_LENGTH]
        key = tag.lower()
        if tag and key not in seen:
            seen.add(key)
            cleaned.append(tag)
    return cleaned


def sanitize_url(url: str) -> str:
    """
    Validate an external application URL.

    Returns the cleaned URL or raises ValueError when the scheme or host is unusable.
    """
    if not url:
        return ""

    if len(url) > MAX_URL_LENGTH:
        raise ValueError(f"URL exceeds maximum length of {MAX_URL_LENGTH} characters")

    url = bleach.clean(url, tags=[], strip=True).strip()
    if url.startswith('//'):
        url = f"https:{url}"

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Only HTTP and HTTPS links are allowed, got '{scheme or 'none'}'")

    hostname = parsed.netloc.split('@')[-1].split(':')[0]
    if not hostname or not re.match(r'^[a-zA-Z0-9.-]+$', hostname):
        raise ValueError("URL must have a valid hostname")

    return url


def sanitize_filename(filename: str) -> str:
    """Reduce an uploaded file name to a safe storage path segment."""
    name = (filename or "").replace("\\", "/").split("/")[-1]
    name = re.sub(r'[^A-Za-z0-9._-]+', '_', name).strip('._')
    if not name:
        name = "upload"
    return name[-MAX_FILENAME_LENGTH:]
