"""JSON API for QR codes, groups and users."""

from .routes import router as api_router

__all__ = ["api_router"]
