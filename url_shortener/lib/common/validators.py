"""Validation utilities for URL shortener."""

import re
from urllib.parse import urlparse
from typing import Tuple

ALLOWED_SCHEMES = ("http", "https")
MAX_URL_LENGTH = 2048
MIN_CODE_LENGTH = 3
MAX_CODE_LENGTH = 20

_SHORT_CODE_RE = re.compile(r'[A-Za-z0-9]+')


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    if any(ch.isspace() for ch in url):
        return False, "URL must not contain whitespace"

    try:
        result = urlparse(url)
        # Accessing port validates it
        result.port
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    if result.scheme.lower() not in ALLOWED_SCHEMES:
        return False, "URL must use http or https protocol"

    if not result.hostname:
        return False, "URL must have a valid domain"

    return True, ""


def is_valid_short_code(
    short_code: str,
    min_length: int = MIN_CODE_LENGTH,
    max_length: int = MAX_CODE_LENGTH,
) -> Tuple[bool, str]:
    """Validate the format of a short code.

    Args:
        short_code: The short code to validate
        min_length: Minimum length for short code
        max_length: Maximum length for short code

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not short_code or not isinstance(short_code, str):
        return False, "Short code is required"

    if len(short_code) < min_length:
        return False, f"Short code must be at least {min_length} characters"

    if len(short_code) > max_length:
        return False, f"Short code must be at most {max_length} characters"

    if not _SHORT_CODE_RE.fullmatch(short_code):
        return False, "Short code can only contain letters and numbers"

    return True, ""
