"""Core business logic for dynamic QR codes."""

from .shortcode import ShortCodeGenerator
from .accountant import ScanAccountant
from .resolver import RedirectResolver, Resolved, Deactivated, NotFound
from .service import QRCodeService

__all__ = [
    "ShortCodeGenerator",
    "ScanAccountant",
    "RedirectResolver",
    "Resolved",
    "Deactivated",
    "NotFound",
    "QRCodeService",
]
