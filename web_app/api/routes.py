"""API routes implementation."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from datetime import datetime, timezone

from .schemas import (
    DeleteResponse,
    ErrorResponse,
    GroupCreateRequest,
    GroupResponse,
    GroupStatsResponse,
    GroupUpdateRequest,
    HealthResponse,
    QRCodeCreateRequest,
    QRCodeResponse,
    QRCodeStatsResponse,
    QRCodeUpdateRequest,
    UserCreateRequest,
    UserResponse,
)
from dynqr.common.headers import get_authenticated_user_id
from dynqr.common.url_builder import build_scan_url
from dynqr.database.models import GroupPatch, QRCode, QRCodeCreate, QRCodeGroup, QRCodePatch

router = APIRouter()


def require_user_id(request: Request) -> str:
    """Authenticated user id forwarded by the gateway; 401 without one."""
    user_id = getattr(request.state, "user_id", None) or get_authenticated_user_id(request.headers)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return user_id


def _scan_url(request: Request, record: QRCode) -> str:
    config = request.app.state.config
    base_url = getattr(request.state, "public_base_url", None) or config.base_url
    return build_scan_url(
        short_code=record.short_code,
        base_url=base_url,
        path_prefix=config.scan_path_prefix,
    )


def _qr_response(request: Request, record: QRCode) -> QRCodeResponse:
    return QRCodeResponse(
        id=record.id,
        user_id=record.user_id,
        group_id=record.group_id,
        title=record.title,
        destination_url=record.destination_url,
        short_code=record.short_code,
        scan_url=_scan_url(request, record),
        foreground_color=record.foreground_color,
        background_color=record.background_color,
        size=record.size,
        is_active=record.is_active,
        scan_count=record.scan_count,
        last_scanned=record.last_scanned,
        scan_history=record.scan_history,
        created_at=record.created_at,
    )


def _group_response(group: QRCodeGroup) -> GroupResponse:
    return GroupResponse(**group.to_dict())


def _not_found(kind: str, record_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} '{record_id}' not found",
    )


NOT_FOUND = {404: {"model": ErrorResponse, "description": "Not found"}}
INVALID = {400: {"model": ErrorResponse, "description": "Invalid request"}}


# Users

@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**INVALID, 409: {"model": ErrorResponse, "description": "User or email already registered"}},
    summary="Register user profile",
)
async def register_user(request: Request, body: UserCreateRequest, user_id: str = Depends(require_user_id)):
    service = request.app.state.service
    user = await service.register_user(user_id, body.email, body.name)
    return UserResponse(**user.to_dict())


@router.get("/users/me", response_model=UserResponse, responses=NOT_FOUND, summary="Current user profile")
async def get_me(request: Request, user_id: str = Depends(require_user_id)):
    user = await request.app.state.service.get_user(user_id)
    if user is None:
        raise _not_found("User", user_id)
    return UserResponse(**user.to_dict())


# QR codes

@router.post(
    "/qrcodes",
    response_model=QRCodeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**INVALID, 500: {"model": ErrorResponse, "description": "Short code generation failed"}},
    summary="Create QR code",
    description="Create a dynamic QR code. Its destination can be changed later without reprinting.",
)
async def create_qr_code(request: Request, body: QRCodeCreateRequest, user_id: str = Depends(require_user_id)):
    service = request.app.state.service
    record = await service.create_qr_code(
        user_id,
        QRCodeCreate(
            title=body.title,
            destination_url=body.destination_url,
            group_id=body.group_id,
            foreground_color=body.foreground_color,
            background_color=body.background_color,
            size=body.size,
        ),
        url_parameters=body.url_parameters,
    )
    return _qr_response(request, record)


@router.get("/qrcodes", response_model=List[QRCodeResponse], summary="List QR codes (newest first)")
async def list_qr_codes(request: Request, user_id: str = Depends(require_user_id)):
    records = await request.app.state.service.list_qr_codes(user_id)
    return [_qr_response(request, r) for r in records]


@router.get("/qrcodes/{qr_id}", response_model=QRCodeResponse, responses=NOT_FOUND, summary="Get QR code")
async def get_qr_code(request: Request, qr_id: str, user_id: str = Depends(require_user_id)):
    record = await request.app.state.service.get_qr_code(user_id, qr_id)
    if record is None:
        raise _not_found("QR code", qr_id)
    return _qr_response(request, record)


@router.patch(
    "/qrcodes/{qr_id}",
    response_model=QRCodeResponse,
    responses={**INVALID, **NOT_FOUND},
    summary="Update QR code",
    description="Change title, destination, colors, size, activation or group.",
)
async def update_qr_code(
    request: Request,
    qr_id: str,
    body: QRCodeUpdateRequest,
    user_id: str = Depends(require_user_id),
):
    patch = QRCodePatch(**body.model_dump(exclude_unset=True))
    record = await request.app.state.service.update_qr_code(user_id, qr_id, patch)
    if record is None:
        raise _not_found("QR code", qr_id)
    return _qr_response(request, record)


@router.delete("/qrcodes/{qr_id}", response_model=DeleteResponse, responses=NOT_FOUND, summary="Delete QR code")
async def delete_qr_code(request: Request, qr_id: str, user_id: str = Depends(require_user_id)):
    if not await request.app.state.service.delete_qr_code(user_id, qr_id):
        raise _not_found("QR code", qr_id)
    return DeleteResponse(success=True)


@router.get(
    "/qrcodes/{qr_id}/stats",
    response_model=QRCodeStatsResponse,
    responses=NOT_FOUND,
    summary="QR code scan statistics",
)
async def get_qr_code_stats(request: Request, qr_id: str, user_id: str = Depends(require_user_id)):
    stats = await request.app.state.service.get_qr_code_stats(user_id, qr_id)
    if stats is None:
        raise _not_found("QR code", qr_id)
    return QRCodeStatsResponse(**stats.to_dict())


# Groups

@router.post(
    "/groups",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
    responses=INVALID,
    summary="Create group",
)
async def create_group(request: Request, body: GroupCreateRequest, user_id: str = Depends(require_user_id)):
    group = await request.app.state.service.create_group(
        user_id,
        name=body.name,
        base_url=body.base_url,
        description=body.description,
    )
    return _group_response(group)


@router.get("/groups", response_model=List[GroupResponse], summary="List groups (newest first)")
async def list_groups(request: Request, user_id: str = Depends(require_user_id)):
    groups = await request.app.state.service.list_groups(user_id)
    return [_group_response(g) for g in groups]


@router.get("/groups/{group_id}", response_model=GroupResponse, responses=NOT_FOUND, summary="Get group")
async def get_group(request: Request, group_id: str, user_id: str = Depends(require_user_id)):
    group = await request.app.state.service.get_group(user_id, group_id)
    if group is None:
        raise _not_found("Group", group_id)
    return _group_response(group)


@router.patch(
    "/groups/{group_id}",
    response_model=GroupResponse,
    responses={**INVALID, **NOT_FOUND},
    summary="Update group",
)
async def update_group(
    request: Request,
    group_id: str,
    body: GroupUpdateRequest,
    user_id: str = Depends(require_user_id),
):
    patch = GroupPatch(**body.model_dump(exclude_unset=True))
    group = await request.app.state.service.update_group(user_id, group_id, patch)
    if group is None:
        raise _not_found("Group", group_id)
    return _group_response(group)


@router.delete(
    "/groups/{group_id}",
    response_model=DeleteResponse,
    responses=NOT_FOUND,
    summary="Delete group",
    description="Delete a group. Member QR codes are kept and detached from it.",
)
async def delete_group(request: Request, group_id: str, user_id: str = Depends(require_user_id)):
    if not await request.app.state.service.delete_group(user_id, group_id):
        raise _not_found("Group", group_id)
    return DeleteResponse(success=True)


@router.get(
    "/groups/{group_id}/qrcodes",
    response_model=List[QRCodeResponse],
    responses=NOT_FOUND,
    summary="List a group's QR codes (newest first)",
)
async def list_group_qr_codes(request: Request, group_id: str, user_id: str = Depends(require_user_id)):
    records = await request.app.state.service.list_group_codes(user_id, group_id)
    if records is None:
        raise _not_found("Group", group_id)
    return [_qr_response(request, r) for r in records]


@router.get(
    "/groups/{group_id}/stats",
    response_model=GroupStatsResponse,
    responses=NOT_FOUND,
    summary="Group scan statistics",
)
async def get_group_stats(request: Request, group_id: str, user_id: str = Depends(require_user_id)):
    stats = await request.app.state.service.get_group_stats(user_id, group_id)
    if stats is None:
        raise _not_found("Group", group_id)
    return GroupStatsResponse(**stats)


# Health

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is healthy.",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    health = await request.app.state.service.health_check()

    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
