"""In-memory record store."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from ..errors import DuplicateEmail, DuplicateShortCode, DuplicateUser
from ..shortcode import ShortCodeGenerator
from .base import RecordStoreBase
from .models import (
    GroupCreate,
    GroupPatch,
    QRCode,
    QRCodeCreate,
    QRCodeGroup,
    QRCodePatch,
    User,
    utcnow,
)


def _copy(record):
    if isinstance(record, QRCode):
        return replace(record, scan_history=list(record.scan_history))
    return replace(record)


class InMemoryRecordStore(RecordStoreBase):
    """Dict-backed store, safe for concurrent coroutines on one event loop.

    Every read-modify-write of a record runs under that record's own lock,
    so concurrent scans of one code are serialized while scans of different
    codes never wait on each other. Index mutations (create, delete) run
    under a single store-wide lock, always acquired before a record lock.
    """

    def __init__(
        self,
        generator: Optional[ShortCodeGenerator] = None,
        short_code_length: int = 9,
        record_id_length: int = 6,
        group_id_length: int = 9,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(
            generator=generator,
            short_code_length=short_code_length,
            record_id_length=record_id_length,
            group_id_length=group_id_length,
        )
        self.logger = logger or logging.getLogger(__name__)

        self._users: Dict[str, User] = {}
        self._email_index: Dict[str, str] = {}
        self._groups: Dict[str, QRCodeGroup] = {}
        self._qr_codes: Dict[str, QRCode] = {}
        self._short_code_index: Dict[str, str] = {}

        self._index_lock = asyncio.Lock()
        self._record_locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._record_locks.get(key)
        if lock is None:
            lock = self._record_locks[key] = asyncio.Lock()
        return lock

    async def _read(self, qr_id: str) -> Optional[QRCode]:
        """Load a QR code. Subclasses may add I/O here."""
        record = self._qr_codes.get(qr_id)
        return _copy(record) if record else None

    async def _write(self, record: QRCode) -> None:
        """Persist a QR code. Subclasses may add I/O here."""
        self._qr_codes[record.id] = _copy(record)

    # Users

    async def create_user(self, user_id: str, email: str, name: str) -> User:
        async with self._index_lock:
            if user_id in self._users:
                raise DuplicateUser(user_id)
            key = email.lower()
            if key in self._email_index:
                raise DuplicateEmail(email)
            user = User(id=user_id, email=email, name=name)
            self._users[user_id] = user
            self._email_index[key] = user_id
        self.logger.info(f"Registered user {user_id}")
        return _copy(user)

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return _copy(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = self._email_index.get(email.lower())
        return await self.get_user(user_id) if user_id else None

    # Groups

    async def _group_id_exists(self, group_id: str) -> bool:
        return group_id in self._groups

    async def create_group(self, user_id: str, data: GroupCreate) -> QRCodeGroup:
        async with self._index_lock:
            group_id = await self.generator.generate_unique(
                self._group_id_exists, length=self.group_id_length
            )
            group = QRCodeGroup(
                id=group_id,
                user_id=user_id,
                name=data.name,
                base_url=data.base_url,
                description=data.description,
                created_at=utcnow(),
            )
            self._groups[group_id] = group
        self.logger.info(f"Created group {group_id} for user {user_id}")
        return _copy(group)

    async def get_group(self, group_id: str) -> Optional[QRCodeGroup]:
        group = self._groups.get(group_id)
        return _copy(group) if group else None

    async def update_group(self, group_id: str, patch: GroupPatch) -> Optional[QRCodeGroup]:
        async with self._lock_for(f"group:{group_id}"):
            group = self._groups.get(group_id)
            if group is None:
                return None
            updated = replace(group, **patch.changes())
            self._groups[group_id] = updated
        return _copy(updated)

    async def delete_group(self, group_id: str) -> bool:
        async with self._index_lock:
            if group_id not in self._groups:
                return False

            member_ids = [r.id for r in self._qr_codes.values() if r.group_id == group_id]
            for qr_id in member_ids:
                async with self._lock_for(qr_id):
                    record = await self._read(qr_id)
                    if record is not None and record.group_id == group_id:
                        await self._write(replace(record, group_id=None))

            del self._groups[group_id]
            self._record_locks.pop(f"group:{group_id}", None)

        self.logger.info(f"Deleted group {group_id}, detached {len(member_ids)} codes")
        return True

    async def list_groups_by_user(self, user_id: str) -> List[QRCodeGroup]:
        groups = [_copy(g) for g in self._groups.values() if g.user_id == user_id]
        return self.newest_first(groups)

    # QR codes

    async def _qr_id_exists(self, qr_id: str) -> bool:
        return qr_id in self._qr_codes

    async def short_code_exists(self, short_code: str) -> bool:
        return short_code in self._short_code_index

    async def create_qr_code(self, user_id: str, data: QRCodeCreate) -> QRCode:
        async with self._index_lock:
            qr_id = await self.generator.generate_unique(
                self._qr_id_exists, length=self.record_id_length
            )
            short_code = await self.generator.generate_unique(
                self.short_code_exists, length=self.short_code_length
            )
            if short_code in self._short_code_index:
                raise DuplicateShortCode(short_code)

            record = QRCode(
                id=qr_id,
                user_id=user_id,
                group_id=data.group_id,
                title=data.title,
                destination_url=data.destination_url,
                short_code=short_code,
                foreground_color=data.foreground_color,
                background_color=data.background_color,
                size=data.size,
                created_at=utcnow(),
            )
            await self._write(record)
            self._short_code_index[short_code] = qr_id

        self.logger.info(f"Created QR code {qr_id} ({short_code}) for user {user_id}")
        return _copy(record)

    async def get_qr_code(self, qr_id: str) -> Optional[QRCode]:
        return await self._read(qr_id)

    async def get_qr_code_by_short_code(self, short_code: str) -> Optional[QRCode]:
        qr_id = self._short_code_index.get(short_code)
        if qr_id is None:
            return None
        return await self._read(qr_id)

    async def update_qr_code(self, qr_id: str, patch: QRCodePatch) -> Optional[QRCode]:
        async with self._lock_for(qr_id):
            record = await self._read(qr_id)
            if record is None:
                return None
            updated = replace(record, **patch.changes())
            await self._write(updated)
        return updated

    async def delete_qr_code(self, qr_id: str) -> bool:
        async with self._index_lock:
            async with self._lock_for(qr_id):
                record = self._qr_codes.pop(qr_id, None)
                if record is None:
                    return False
                self._short_code_index.pop(record.short_code, None)
            self._record_locks.pop(qr_id, None)
        self.logger.info(f"Deleted QR code {qr_id} ({record.short_code})")
        return True

    async def list_qr_codes_by_user(self, user_id: str) -> List[QRCode]:
        records = [_copy(r) for r in self._qr_codes.values() if r.user_id == user_id]
        return self.newest_first(records)

    async def list_qr_codes_by_group(self, group_id: str) -> List[QRCode]:
        records = [_copy(r) for r in self._qr_codes.values() if r.group_id == group_id]
        return self.newest_first(records)

    async def record_scan(self, qr_id: str, scanned_at: datetime) -> Optional[QRCode]:
        async with self._lock_for(qr_id):
            record = await self._read(qr_id)
            if record is None or not record.is_active:
                return record
            updated = record.with_scan(scanned_at)
            await self._write(updated)
        self.logger.debug(f"Recorded scan for {qr_id}: {updated.scan_count}")
        return updated

    # Lifecycle

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self._record_locks.clear()
        self.logger.debug("In-memory store closed")
