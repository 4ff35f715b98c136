"""URL building utilities for the dynamic QR service."""

from typing import Dict, Optional


def build_scan_url(
    short_code: str,
    base_url: str,
    path_prefix: str = "/api/qr",
    user_id: Optional[str] = None,
) -> str:
    """Build the URL encoded into a QR image.

    Args:
        short_code: The short code
        base_url: Public origin (e.g., https://qr.example.com)
        path_prefix: Path the redirect endpoint is mounted under
        user_id: Owner id, for the tenant-scoped variant of the URL

    Returns:
        Complete scan URL
    """
    base = base_url.rstrip("/")
    prefix = path_prefix.strip("/")
    parts = [base]
    if prefix:
        parts.append(prefix)
    if user_id:
        parts.append(user_id)
    parts.append(short_code)
    return "/".join(parts)


def normalize_base_url(url: str) -> str:
    """Default a scheme-less group base URL to https."""
    url = url.strip()
    if url and not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def append_url_parameters(destination_url: str, url_parameters: Optional[str]) -> str:
    """Join a query string onto a destination URL.

    Args:
        destination_url: URL without (or with) an existing query string
        url_parameters: Raw parameters, with or without a leading '?'

    Returns:
        Destination URL carrying the parameters
    """
    if not url_parameters:
        return destination_url
    params = url_parameters.strip().lstrip("?&")
    if not params:
        return destination_url
    separator = "&" if "?" in destination_url else "?"
    return f"{destination_url}{separator}{params}"


def classify_url_variation(destination_url: str, base_url: str) -> Dict[str, str]:
    """Describe how a code's destination varies from its group's base URL.

    Returns:
        ``{"type": "different", "variation": url}`` when the destination is
        not under the base, ``{"type": "params", "path": ..., "params": ...}``
        when it adds a query string, ``{"type": "path", "variation": ...}``
        otherwise
    """
    if not destination_url.startswith(base_url):
        return {"type": "different", "variation": destination_url}

    remaining = destination_url[len(base_url):]
    if "?" in remaining:
        path, params = remaining.split("?", 1)
        return {"type": "params", "path": path or "/", "params": params}

    return {"type": "path", "variation": remaining or "/"}

