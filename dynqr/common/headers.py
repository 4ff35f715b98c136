"""Header parsing utilities for the dynamic QR service."""

from typing import Mapping, Optional


USER_ID_HEADER = "x-user-id"


def _lookup(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name and value:
            return value.strip() or None
    return None


def get_authenticated_user_id(headers: Mapping[str, str]) -> Optional[str]:
    """User id forwarded by the identity-aware gateway, if any."""
    return _lookup(headers, USER_ID_HEADER)


def build_public_base_url(
    headers: Mapping[str, str],
    fallback_base_url: str,
    request_scheme: Optional[str] = None,
    request_host: Optional[str] = None,
) -> str:
    """Origin that scanners will reach, for printing into QR codes.

    Priority:
    1. X-Forwarded-Proto + X-Forwarded-Host (first hop only)
    2. Request scheme + host
    3. Fallback base URL from config

    Args:
        headers: Request headers
        fallback_base_url: Fallback base URL from configuration
        request_scheme: Request scheme (http/https)
        request_host: Request host

    Returns:
        Base URL without trailing slash (e.g., https://qr.example.com)
    """
    proto = _lookup(headers, "x-forwarded-proto")
    host = _lookup(headers, "x-forwarded-host")
    if proto and host:
        # Proxies chain values as "a, b"; the client-facing hop comes first
        return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"

    if request_scheme and request_host:
        return f"{request_scheme}://{request_host}"

    return fallback_base_url.rstrip("/")


def get_forwarded_path_prefix(headers: Mapping[str, str]) -> str:
    """Path prefix stripped by the proxy (X-Forwarded-Prefix).

    Returns normalized prefix with leading slash, no trailing (e.g. '/qr-svc'), or '' if not set.
    """
    prefix = _lookup(headers, "x-forwarded-prefix")
    if not prefix:
        return ""
    p = prefix.strip("/")
    return "/" + p if p else ""
