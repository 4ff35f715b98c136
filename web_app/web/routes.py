"""Scan redirect routes."""

import os
from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from dynqr.resolver import Deactivated, NotFound

router = APIRouter()

template_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
templates = Jinja2Templates(directory=template_dir)

# Scans must reach the server every time or they go uncounted
NO_STORE = {"Cache-Control": "no-store"}


async def _redirect(request: Request, short_code: str, user_id: Optional[str] = None):
    service = request.app.state.service

    outcome = await service.resolve(short_code, user_id=user_id)

    if isinstance(outcome, NotFound):
        return templates.TemplateResponse(
            request,
            "not_found.html",
            {"short_code": short_code},
            status_code=status.HTTP_404_NOT_FOUND,
            headers=NO_STORE,
        )

    if isinstance(outcome, Deactivated):
        return templates.TemplateResponse(
            request,
            "gone.html",
            {"short_code": short_code},
            status_code=status.HTTP_410_GONE,
            headers=NO_STORE,
        )

    return RedirectResponse(
        url=outcome.destination_url,
        status_code=status.HTTP_302_FOUND,
        headers=NO_STORE,
    )


@router.get("/api/qr/{short_code}", include_in_schema=False)
async def redirect_short_code(request: Request, short_code: str):
    """Redirect a scan to the code's current destination."""
    return await _redirect(request, short_code)


@router.get("/api/qr/{user_id}/{short_code}", include_in_schema=False)
async def redirect_user_short_code(request: Request, user_id: str, short_code: str):
    """Tenant-scoped scan URL: the code must belong to user_id."""
    return await _redirect(request, short_code, user_id=user_id)


@router.get("/qr/{short_code}", include_in_schema=False)
async def forward_short_code(short_code: str):
    """Client-facing scan path; hands over to the redirect endpoint."""
    # Relative, so it still works behind a proxy that strips a path prefix
    return RedirectResponse(
        url=f"../api/qr/{short_code}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        headers=NO_STORE,
    )
