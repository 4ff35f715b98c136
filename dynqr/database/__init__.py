"""Record store layer for the dynamic QR service."""

from .base import RecordStoreBase
from .memory import InMemoryRecordStore
from .postgres import PostgresRecordStore
from .models import QRCode, QRCodeGroup, User, QRCodePatch, GroupPatch, QRCodeCreate, GroupCreate

__all__ = [
    "RecordStoreBase",
    "InMemoryRecordStore",
    "PostgresRecordStore",
    "QRCode",
    "QRCodeGroup",
    "User",
    "QRCodePatch",
    "GroupPatch",
    "QRCodeCreate",
    "GroupCreate",
]
