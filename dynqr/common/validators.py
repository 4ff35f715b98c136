"""Validation utilities for QR code and group input."""

import re
from urllib.parse import urlparse
from typing import Dict, Tuple

from ..database.models import MIN_SIZE, MAX_SIZE
from ..shortcode import ShortCodeGenerator


HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

MAX_URL_LENGTH = 2048
MAX_TITLE_LENGTH = 100
MAX_NAME_LENGTH = 100


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

    try:
        result = urlparse(url)
    except ValueError as e:
        return False, f"Invalid URL format: {str(e)}"

    if result.scheme not in ["http", "https"]:
        return False, "URL must use http or https protocol"

    if not result.netloc:
        return False, "URL must have a valid domain"

    return True, ""


def is_valid_hex_color(color: str) -> Tuple[bool, str]:
    if not isinstance(color, str) or not HEX_COLOR_RE.match(color):
        return False, "Color must be a 6-digit hex value like #1a2b3c"
    return True, ""


def is_valid_size(size: int) -> Tuple[bool, str]:
    if isinstance(size, bool) or not isinstance(size, int):
        return False, "Size must be an integer"
    if size < MIN_SIZE or size > MAX_SIZE:
        return False, f"Size must be between {MIN_SIZE} and {MAX_SIZE}"
    return True, ""


def is_valid_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> Tuple[bool, str]:
    if not isinstance(title, str) or not title.strip():
        return False, "Value is required"
    if len(title) > max_length:
        return False, f"Value must be at most {max_length} characters"
    return True, ""


def is_valid_short_code(short_code: str, length: int = 0, max_length: int = 0) -> Tuple[bool, str]:
    """Validate a short code taken from a scanned URL.

    Args:
        short_code: The short code to validate
        length: Expected length (0 accepts any length)
        max_length: Longest accepted code (0 for no limit)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not short_code or not isinstance(short_code, str):
        return False, "Short code is required"

    if length and len(short_code) != length:
        return False, f"Short code must be {length} characters"

    if max_length and len(short_code) > max_length:
        return False, f"Short code must be at most {max_length} characters"

    if not ShortCodeGenerator.is_valid_format(short_code):
        return False, "Short code contains characters outside the code alphabet"

    return True, ""


def collect_errors(**checks: Tuple[bool, str]) -> Dict[str, str]:
    """Gather the failing checks into a field -> message mapping."""
    return {field: message for field, (ok, message) in checks.items() if not ok}
