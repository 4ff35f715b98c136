"""Common utilities for the dynamic QR service."""

from .validators import (
    is_valid_url,
    is_valid_hex_color,
    is_valid_size,
    is_valid_title,
    is_valid_short_code,
    collect_errors,
)
from .headers import get_authenticated_user_id, build_public_base_url, get_forwarded_path_prefix
from .url_builder import build_scan_url, normalize_base_url, append_url_parameters, classify_url_variation
from .logging_config import setup_logging, get_logger

__all__ = [
    "is_valid_url",
    "is_valid_hex_color",
    "is_valid_size",
    "is_valid_title",
    "is_valid_short_code",
    "collect_errors",
    "get_authenticated_user_id",
    "build_public_base_url",
    "get_forwarded_path_prefix",
    "build_scan_url",
    "normalize_base_url",
    "append_url_parameters",
    "classify_url_variation",
    "setup_logging",
    "get_logger",
]
