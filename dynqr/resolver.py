"""Short code resolution for scanned QR codes."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, Union

from .accountant import ScanAccountant
from .common.validators import is_valid_short_code
from .database.base import RecordStoreBase
from .database.cache import RedisCache
from .database.models import QRCode


@dataclass(frozen=True)
class Resolved:
    """Active code: redirect to destination_url."""

    short_code: str
    qr_id: str
    destination_url: str


@dataclass(frozen=True)
class Deactivated:
    """Code exists but its owner switched it off (HTTP 410)."""

    short_code: str
    qr_id: str


@dataclass(frozen=True)
class NotFound:
    """No code matches (HTTP 404)."""

    short_code: str


Resolution = Union[Resolved, Deactivated, NotFound]

_IN_BACKGROUND = object()


class RedirectResolver:
    """Turn a scanned short code into a redirect target.

    The outcome is decided by the accounting step, which checks activation
    in the same serialized unit that counts the scan: a code switched off or
    deleted while a scan is in flight is reported as such and not counted.
    If accounting takes longer than ``accounting_timeout_seconds`` the
    redirect proceeds on the looked-up entry and the scan keeps running in
    the background; it is never cancelled. Store failures, during lookup or
    accounting, propagate to the caller.

    Only active codes are cached, and a cache entry that disagrees with the
    accounted record is dropped.
    """

    def __init__(
        self,
        store: RecordStoreBase,
        accountant: ScanAccountant,
        cache: Optional[RedisCache] = None,
        accounting_timeout_seconds: Optional[float] = 2.0,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize redirect resolver.

        Args:
            store: Record store to look codes up in
            accountant: Scan accountant invoked for active codes
            cache: Optional resolution cache
            accounting_timeout_seconds: How long a redirect waits for accounting
                (None waits indefinitely)
            logger: Optional logger
        """
        self.store = store
        self.accountant = accountant
        self.cache = cache
        self.accounting_timeout_seconds = accounting_timeout_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Set[asyncio.Task] = set()

    async def resolve(self, short_code: str, user_id: Optional[str] = None) -> Resolution:
        """Resolve a short code, accounting one scan if it is active.

        Args:
            short_code: Code taken from the scanned URL
            user_id: Owner the code must belong to (tenant-scoped URLs)

        Returns:
            Resolved, Deactivated or NotFound
        """
        is_valid, _ = is_valid_short_code(short_code, max_length=self.store.short_code_length)
        if not is_valid:
            self.logger.info(f"Rejected malformed short code: {short_code!r}")
            return NotFound(short_code=short_code)

        entry = await self._lookup(short_code)

        if entry is None or (user_id is not None and entry["user_id"] != user_id):
            self.logger.info(f"Short code not found: {short_code}")
            return NotFound(short_code=short_code)

        if not entry["is_active"]:
            self.logger.info(f"Short code deactivated: {short_code}")
            return Deactivated(short_code=short_code, qr_id=entry["id"])

        task = asyncio.ensure_future(self._record_scan(short_code, entry))
        record = await self._wait_for_accounting(task, entry["id"])
        if record is _IN_BACKGROUND:
            return Resolved(
                short_code=short_code,
                qr_id=entry["id"],
                destination_url=entry["destination_url"],
            )

        if record is None:
            self.logger.info(f"Short code deleted while resolving: {short_code}")
            return NotFound(short_code=short_code)

        if not record.is_active:
            self.logger.info(f"Short code deactivated while resolving: {short_code}")
            return Deactivated(short_code=short_code, qr_id=record.id)

        self.logger.debug(f"Resolved {short_code} -> {record.destination_url}")
        return Resolved(
            short_code=short_code,
            qr_id=record.id,
            destination_url=record.destination_url,
        )

    async def _lookup(self, short_code: str) -> Optional[Dict[str, Any]]:
        if self.cache:
            entry = await self.cache.get_entry(short_code)
            if entry and entry["is_active"]:
                self.logger.debug(f"Cache hit for {short_code}")
                return entry

        record = await self.store.get_qr_code_by_short_code(short_code)
        if record is None:
            return None

        if self.cache and record.is_active:
            await self.cache.set_entry(record)

        return RedisCache.entry_for(record)

    async def _record_scan(self, short_code: str, entry: Dict[str, Any]) -> Optional[QRCode]:
        record = await self.accountant.record(entry["id"])

        if self.cache and (record is None or RedisCache.entry_for(record) != entry):
            await self.cache.invalidate(short_code)
            self.logger.debug(f"Dropped stale cache entry for {short_code}")

        return record

    async def _wait_for_accounting(self, task: asyncio.Task, qr_id: str) -> Any:
        if self.accounting_timeout_seconds is None:
            return await task

        # asyncio.wait leaves the task running past the deadline
        await asyncio.wait({task}, timeout=self.accounting_timeout_seconds)
        if task.done():
            return task.result()

        self.logger.warning(
            f"Scan accounting for {qr_id} exceeded {self.accounting_timeout_seconds}s, "
            "continuing in background"
        )
        self._pending.add(task)
        task.add_done_callback(self._finish_background)
        return _IN_BACKGROUND

    def _finish_background(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Background scan accounting failed: {error}")

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for scans still being accounted in the background."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
