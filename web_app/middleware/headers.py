"""Forwarded headers middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from dynqr.common.headers import (
    build_public_base_url,
    get_authenticated_user_id,
    get_forwarded_path_prefix,
)


class ForwardedHeadersMiddleware(BaseHTTPMiddleware):
    """Resolve the caller identity and public origin once per request."""

    def __init__(self, app, fallback_base_url: str = "http://localhost:9300"):
        super().__init__(app)
        self.fallback_base_url = fallback_base_url

    async def dispatch(self, request: Request, call_next: Callable):
        headers = dict(request.headers)
        request.state.user_id = get_authenticated_user_id(headers)

        base_url = build_public_base_url(
            headers=headers,
            fallback_base_url=self.fallback_base_url,
            request_scheme=request.url.scheme,
            request_host=request.headers.get("host"),
        )
        # Scan URLs must include the prefix a reverse proxy strips
        request.state.public_base_url = base_url + get_forwarded_path_prefix(headers)

        return await call_next(request)
