"""Scan accounting for resolved QR codes."""

import logging
from datetime import datetime
from typing import Callable, Optional

from .database.base import RecordStoreBase
from .database.models import QRCode, utcnow


class ScanAccountant:
    """Records one scan event per call.

    Not idempotent: two calls mean two scans. The read-modify-write itself
    is delegated to ``RecordStoreBase.record_scan``, which serializes it per
    record, so ``scan_count == len(scan_history)`` holds under concurrency.
    """

    def __init__(
        self,
        store: RecordStoreBase,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize scan accountant.

        Args:
            store: Record store holding the QR codes
            clock: Source of scan timestamps (UTC now by default)
            logger: Optional logger
        """
        self.store = store
        self.clock = clock or utcnow
        self.logger = logger or logging.getLogger(__name__)

    async def record(self, qr_id: str) -> Optional[QRCode]:
        """Account one scan of the given record.

        A record that vanished or was deactivated between resolution and
        accounting is not counted; the returned record tells the caller which.

        Args:
            qr_id: Primary id of the scanned QR code

        Returns:
            The updated record, the unchanged record if it is deactivated,
            or None if it no longer exists
        """
        updated = await self.store.record_scan(qr_id, self.clock())
        if updated is None:
            self.logger.debug(f"Scan for vanished QR code {qr_id} ignored")
            return None
        if not updated.is_active:
            self.logger.debug(f"Scan for deactivated QR code {qr_id} ignored")
            return updated

        self.logger.debug(f"Scan #{updated.scan_count} recorded for {qr_id}")
        return updated
