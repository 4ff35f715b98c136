"""Abstract base class for record store implementations."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..shortcode import ShortCodeGenerator
from .models import (
    GroupCreate,
    GroupPatch,
    QRCode,
    QRCodeCreate,
    QRCodeGroup,
    QRCodePatch,
    User,
)


class RecordStoreBase(ABC):
    """Persistence for users, groups and QR codes.

    Lookups return None on absence and never raise for it. Listings are
    ordered by ``created_at`` descending (newest first).
    """

    def __init__(
        self,
        generator: Optional[ShortCodeGenerator] = None,
        short_code_length: int = 9,
        record_id_length: int = 6,
        group_id_length: int = 9,
    ):
        """Initialize the store.

        Args:
            generator: Generator used for ids and short codes
            short_code_length: Length of generated short codes
            record_id_length: Length of generated QR code ids
            group_id_length: Length of generated group ids
        """
        self.generator = generator or ShortCodeGenerator(default_length=short_code_length)
        self.short_code_length = short_code_length
        self.record_id_length = record_id_length
        self.group_id_length = group_id_length

    @staticmethod
    def newest_first(records: list) -> list:
        """Sort records by creation time, newest first."""
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    # Users

    @abstractmethod
    async def create_user(self, user_id: str, email: str, name: str) -> User:
        """Register a user profile.

        Raises:
            DuplicateEmail: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        pass

    # Groups

    @abstractmethod
    async def create_group(self, user_id: str, data: GroupCreate) -> QRCodeGroup:
        """Create a group with a generated id.

        Raises:
            GenerationExhausted: If no free id could be drawn
        """
        pass

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[QRCodeGroup]:
        pass

    @abstractmethod
    async def update_group(self, group_id: str, patch: GroupPatch) -> Optional[QRCodeGroup]:
        """Merge patch into a group.

        Returns:
            Updated group, or None if it does not exist
        """
        pass

    @abstractmethod
    async def delete_group(self, group_id: str) -> bool:
        """Delete a group and detach its member codes.

        Member codes are kept with ``group_id`` cleared.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def list_groups_by_user(self, user_id: str) -> List[QRCodeGroup]:
        pass

    # QR codes

    @abstractmethod
    async def create_qr_code(self, user_id: str, data: QRCodeCreate) -> QRCode:
        """Create a QR code with a generated id and short code.

        Returns:
            The new record (active, no scans)

        Raises:
            GenerationExhausted: If no free id or short code could be drawn
            DuplicateShortCode: If the short code was taken concurrently
        """
        pass

    @abstractmethod
    async def get_qr_code(self, qr_id: str) -> Optional[QRCode]:
        pass

    @abstractmethod
    async def get_qr_code_by_short_code(self, short_code: str) -> Optional[QRCode]:
        pass

    @abstractmethod
    async def short_code_exists(self, short_code: str) -> bool:
        pass

    @abstractmethod
    async def update_qr_code(self, qr_id: str, patch: QRCodePatch) -> Optional[QRCode]:
        """Merge patch into a QR code.

        Returns:
            Updated record, or None if it does not exist
        """
        pass

    @abstractmethod
    async def delete_qr_code(self, qr_id: str) -> bool:
        """Delete a QR code and its short code index entry.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def list_qr_codes_by_user(self, user_id: str) -> List[QRCode]:
        pass

    @abstractmethod
    async def list_qr_codes_by_group(self, group_id: str) -> List[QRCode]:
        pass

    @abstractmethod
    async def record_scan(self, qr_id: str, scanned_at: datetime) -> Optional[QRCode]:
        """Account one scan atomically.

        Appends scanned_at to the history, sets ``scan_count`` to the history
        length and ``last_scanned`` to scanned_at, as one unit with respect
        to other mutations of the same record. A deactivated record is left
        untouched; the activation check happens inside that same unit.

        Returns:
            Updated record, the unchanged record if it is deactivated, or
            None if it does not exist
        """
        pass

    # Lifecycle

    async def initialize(self) -> None:
        """Prepare the backing engine (no-op by default)."""

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
