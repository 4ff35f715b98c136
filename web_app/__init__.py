"""Web application for the dynamic QR service."""

from .app_factory import create_app

__all__ = ["create_app"]
