"""Data models for the dynamic QR service."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


DEFAULT_FOREGROUND_COLOR = "#000000"
DEFAULT_BACKGROUND_COLOR = "#ffffff"
DEFAULT_SIZE = 256
MIN_SIZE = 128
MAX_SIZE = 1024


class _Unset:
    """Marker for patch fields the caller did not touch."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class User:
    """Profile of a user authenticated by the external identity provider."""

    id: str
    email: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "name": self.name}



@dataclass
class QRCodeGroup:
    """Named collection of codes sharing a base URL."""

    id: str
    user_id: str
    name: str
    base_url: str
    created_at: datetime
    description: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "base_url": self.base_url,
            "description": self.description,
            "created_at": _format_timestamp(self.created_at),
        }



@dataclass
class QRCode:
    """A dynamic QR code: a short code pointing at a changeable destination."""

    id: str
    user_id: str
    title: str
    destination_url: str
    short_code: str
    created_at: datetime
    group_id: Optional[str] = None
    foreground_color: str = DEFAULT_FOREGROUND_COLOR
    background_color: str = DEFAULT_BACKGROUND_COLOR
    size: int = DEFAULT_SIZE
    is_active: bool = True
    scan_count: int = 0
    last_scanned: Optional[datetime] = None
    scan_history: List[datetime] = field(default_factory=list)

    def with_scan(self, scanned_at: datetime) -> "QRCode":
        """Return a copy with one more scan accounted at scanned_at.

        The receiver, including its history list, is left untouched.
        """
        history = list(self.scan_history)
        history.append(scanned_at)
        return replace(
            self,
            scan_history=history,
            scan_count=len(history),
            last_scanned=scanned_at,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "group_id": self.group_id,
            "title": self.title,
            "destination_url": self.destination_url,
            "short_code": self.short_code,
            "foreground_color": self.foreground_color,
            "background_color": self.background_color,
            "size": self.size,
            "is_active": self.is_active,
            "scan_count": self.scan_count,
            "last_scanned": _format_timestamp(self.last_scanned),
            "scan_history": [ts.isoformat() for ts in self.scan_history],
            "created_at": _format_timestamp(self.created_at),
        }



@dataclass
class QRCodeCreate:
    """Owner-supplied fields of a new QR code."""

    title: str
    destination_url: str
    group_id: Optional[str] = None
    foreground_color: str = DEFAULT_FOREGROUND_COLOR
    background_color: str = DEFAULT_BACKGROUND_COLOR
    size: int = DEFAULT_SIZE


@dataclass
class GroupCreate:
    """Owner-supplied fields of a new group."""

    name: str
    base_url: str
    description: Optional[str] = None


class _Patch:
    """Shared behaviour of the typed patch structs."""

    def changes(self) -> Dict[str, Any]:
        """Fields the caller set, including explicit None."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


@dataclass
class QRCodePatch(_Patch):
    """Mutable fields of a QR code. ``group_id=None`` detaches the code."""

    title: Any = UNSET
    destination_url: Any = UNSET
    foreground_color: Any = UNSET
    background_color: Any = UNSET
    size: Any = UNSET
    is_active: Any = UNSET
    group_id: Any = UNSET


@dataclass
class GroupPatch(_Patch):
    """Mutable fields of a group."""

    name: Any = UNSET
    base_url: Any = UNSET
    description: Any = UNSET
