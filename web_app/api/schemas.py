"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime

from dynqr.database.models import (
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_FOREGROUND_COLOR,
    DEFAULT_SIZE,
    MAX_SIZE,
    MIN_SIZE,
)


HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _check_http_url(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return v


class QRCodeCreateRequest(BaseModel):
    """Request to create a dynamic QR code."""

    title: str = Field(..., min_length=1, max_length=100)
    destination_url: str = Field(..., min_length=1, max_length=2048)
    url_parameters: Optional[str] = Field(None, description="Query string appended to the destination")
    group_id: Optional[str] = None
    foreground_color: str = Field(DEFAULT_FOREGROUND_COLOR, pattern=HEX_COLOR_PATTERN)
    background_color: str = Field(DEFAULT_BACKGROUND_COLOR, pattern=HEX_COLOR_PATTERN)
    size: int = Field(DEFAULT_SIZE, ge=MIN_SIZE, le=MAX_SIZE)

    @field_validator("destination_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _check_http_url(v)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Spring menu",
                    "destination_url": "https://example.com/menu",
                    "url_parameters": "utm_source=table",
                    "size": 256,
                }
            ]
        }
    }


class QRCodeUpdateRequest(BaseModel):
    """Partial update of a QR code. Send ``group_id: null`` to detach it."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    destination_url: Optional[str] = Field(None, min_length=1, max_length=2048)
    foreground_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    background_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    size: Optional[int] = Field(None, ge=MIN_SIZE, le=MAX_SIZE)
    is_active: Optional[bool] = None
    group_id: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("destination_url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_http_url(v)


class QRCodeResponse(BaseModel):
    """A QR code as seen by its owner."""

    id: str
    user_id: str
    group_id: Optional[str] = None
    title: str
    destination_url: str
    short_code: str
    scan_url: str
    foreground_color: str
    background_color: str
    size: int
    is_active: bool
    scan_count: int
    last_scanned: Optional[datetime] = None
    scan_history: List[datetime]
    created_at: datetime


class QRCodeStatsResponse(BaseModel):
    """Current month vs. monthly average for one code."""

    months_since_creation: int
    current_month_scans: int
    average_scans_per_month: float
    percentage_change: float
    scan_count: int
    last_scanned: Optional[datetime] = None


class GroupCreateRequest(BaseModel):
    """Request to create a group."""

    name: str = Field(..., min_length=1, max_length=100)
    base_url: str = Field(..., min_length=1, max_length=2048, description="https:// is assumed without a scheme")
    description: Optional[str] = Field(None, max_length=500)


class GroupUpdateRequest(BaseModel):
    """Partial update of a group."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    base_url: Optional[str] = Field(None, min_length=1, max_length=2048)
    description: Optional[str] = Field(None, max_length=500)

    model_config = {"extra": "forbid"}


class GroupResponse(BaseModel):
    id: str
    user_id: str
    name: str
    base_url: str
    description: Optional[str] = None
    created_at: datetime


class URLVariation(BaseModel):
    type: str
    variation: Optional[str] = None
    path: Optional[str] = None
    params: Optional[str] = None


class GroupStatsResponse(BaseModel):
    total_codes: int
    total_scans: int
    average_scans_per_code: int
    variations: Dict[str, URLVariation]


class UserCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str


class DeleteResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Record store status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    details: Optional[Dict[str, str]] = Field(None, description="Field-level errors")
