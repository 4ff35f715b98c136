"""Business logic service for dynamic QR codes."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from .accountant import ScanAccountant
from .aggregator import CodeStats, compute_code_stats, compute_group_stats, describe_group_members
from .common.url_builder import append_url_parameters, normalize_base_url
from .common.validators import (
    MAX_NAME_LENGTH,
    collect_errors,
    is_valid_hex_color,
    is_valid_size,
    is_valid_title,
    is_valid_url,
)
from .database.base import RecordStoreBase
from .database.cache import RedisCache
from .database.models import (
    GroupCreate,
    GroupPatch,
    QRCode,
    QRCodeCreate,
    QRCodeGroup,
    QRCodePatch,
    User,
)
from .errors import DuplicateShortCode, GenerationExhausted, ValidationError
from .resolver import RedirectResolver, Resolution


class QRCodeService:
    """Service layer for dynamic QR codes and groups.

    Every owner-facing operation is scoped by ``user_id``: a record owned by
    someone else behaves exactly like an absent one. Lookups and updates of
    absent records return None (deletes return False) rather than raising.
    """

    def __init__(
        self,
        store: RecordStoreBase,
        cache: Optional[RedisCache] = None,
        logger: Optional[logging.Logger] = None,
        max_create_attempts: int = 3,
        accounting_timeout_seconds: Optional[float] = 2.0,
        accountant: Optional[ScanAccountant] = None,
        resolver: Optional[RedirectResolver] = None,
    ):
        """Initialize QR code service.

        Args:
            store: Record store instance
            cache: Optional resolution cache
            logger: Optional logger
            max_create_attempts: Whole-create retries after id/short code exhaustion
            accounting_timeout_seconds: How long a redirect waits for accounting
            accountant: Optional scan accountant (built from store if omitted)
            resolver: Optional resolver (built from store/accountant if omitted)
        """
        self.store = store
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)
        self.max_create_attempts = max(1, max_create_attempts)
        self.accountant = accountant or ScanAccountant(store, logger=self.logger)
        self.resolver = resolver or RedirectResolver(
            store,
            self.accountant,
            cache=cache,
            accounting_timeout_seconds=accounting_timeout_seconds,
            logger=self.logger,
        )

    # Users

    async def register_user(self, user_id: str, email: str, name: str) -> User:
        """Store the profile of a user known to the identity provider.

        Raises:
            ValidationError: If email or name is malformed
            DuplicateUser: If user_id already has a profile
            DuplicateEmail: If the email is taken
        """
        errors = collect_errors(
            email=(isinstance(email, str) and "@" in email.strip("@"), "Invalid email address"),
            name=is_valid_title(name, MAX_NAME_LENGTH),
        )
        if errors:
            raise ValidationError(errors)
        return await self.store.create_user(user_id, email.strip(), name.strip())

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.store.get_user(user_id)

    # Groups

    async def create_group(
        self,
        user_id: str,
        name: str,
        base_url: str,
        description: Optional[str] = None,
    ) -> QRCodeGroup:
        """Create a group.

        Args:
            user_id: Owner
            name: Display name
            base_url: URL member codes vary from; https:// is assumed if no scheme
            description: Optional free text

        Raises:
            ValidationError: If name or base URL is invalid
        """
        base_url = normalize_base_url(base_url or "")
        errors = collect_errors(
            name=is_valid_title(name, MAX_NAME_LENGTH),
            base_url=is_valid_url(base_url),
        )
        if errors:
            raise ValidationError(errors)

        group = await self.store.create_group(
            user_id,
            GroupCreate(name=name.strip(), base_url=base_url, description=description),
        )
        self.logger.info(f"Created group {group.id} '{group.name}' for {user_id}")
        return group

    async def get_group(self, user_id: str, group_id: str) -> Optional[QRCodeGroup]:
        group = await self.store.get_group(group_id)
        if group is None or group.user_id != user_id:
            return None
        return group

    async def list_groups(self, user_id: str) -> List[QRCodeGroup]:
        return await self.store.list_groups_by_user(user_id)

    async def update_group(
        self, user_id: str, group_id: str, patch: GroupPatch
    ) -> Optional[QRCodeGroup]:
        """Apply a patch to a group.

        Returns:
            Updated group, or None if absent or not owned by user_id

        Raises:
            ValidationError: If a patched field is invalid
        """
        changes = patch.changes()
        checks = {}
        if "name" in changes:
            checks["name"] = is_valid_title(changes["name"], MAX_NAME_LENGTH)
        if "base_url" in changes:
            patch = replace(patch, base_url=normalize_base_url(changes["base_url"] or ""))
            checks["base_url"] = is_valid_url(patch.base_url)
        errors = collect_errors(**checks)
        if errors:
            raise ValidationError(errors)

        if await self.get_group(user_id, group_id) is None:
            return None
        return await self.store.update_group(group_id, patch)

    async def delete_group(self, user_id: str, group_id: str) -> bool:
        """Delete a group; its codes stay, detached."""
        if await self.get_group(user_id, group_id) is None:
            return False
        return await self.store.delete_group(group_id)

    async def list_group_codes(self, user_id: str, group_id: str) -> Optional[List[QRCode]]:
        if await self.get_group(user_id, group_id) is None:
            return None
        return await self.store.list_qr_codes_by_group(group_id)

    async def get_group_stats(self, user_id: str, group_id: str) -> Optional[Dict[str, Any]]:
        """Totals for a group plus each member's URL variation from the base URL."""
        group = await self.get_group(user_id, group_id)
        if group is None:
            return None
        records = await self.store.list_qr_codes_by_group(group_id)
        return {
            **compute_group_stats(records).to_dict(),
            "variations": describe_group_members(group, records),
        }

    # QR codes

    def _validate_code_fields(self, fields: Dict[str, Any]) -> Dict[str, str]:
        validators = {
            "title": is_valid_title,
            "destination_url": is_valid_url,
            "foreground_color": is_valid_hex_color,
            "background_color": is_valid_hex_color,
            "size": is_valid_size,
        }
        checks = {name: validators[name](value) for name, value in fields.items() if name in validators}
        if "is_active" in fields and not isinstance(fields["is_active"], bool):
            checks["is_active"] = (False, "Must be a boolean")
        return collect_errors(**checks)

    async def _check_group_reference(self, user_id: str, group_id: Optional[str]) -> Dict[str, str]:
        if group_id is None:
            return {}
        if await self.get_group(user_id, group_id) is None:
            return {"group_id": f"Group '{group_id}' not found"}
        return {}

    async def create_qr_code(
        self,
        user_id: str,
        data: QRCodeCreate,
        url_parameters: Optional[str] = None,
    ) -> QRCode:
        """Create a new dynamic QR code.

        Args:
            user_id: Owner
            data: Title, destination and appearance
            url_parameters: Optional query string appended to the destination

        Returns:
            The new record (active, zero scans)

        Raises:
            ValidationError: If a field is invalid or the group is unknown
            GenerationExhausted, DuplicateShortCode: If every attempt collided
        """
        data = replace(data, destination_url=append_url_parameters(data.destination_url, url_parameters))

        errors = self._validate_code_fields({
            "title": data.title,
            "destination_url": data.destination_url,
            "foreground_color": data.foreground_color,
            "background_color": data.background_color,
            "size": data.size,
        })
        errors.update(await self._check_group_reference(user_id, data.group_id))
        if errors:
            raise ValidationError(errors)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_create_attempts + 1):
            try:
                record = await self.store.create_qr_code(user_id, data)
            except (GenerationExhausted, DuplicateShortCode) as e:
                last_error = e
                self.logger.warning(
                    f"Create attempt {attempt}/{self.max_create_attempts} failed: {e}"
                )
                continue

            self.logger.info(
                f"Created QR code {record.id}: {record.short_code} -> {record.destination_url}"
            )
            return record

        self.logger.error(f"Giving up creating QR code for {user_id}: {last_error}")
        raise last_error

    async def get_qr_code(self, user_id: str, qr_id: str) -> Optional[QRCode]:
        record = await self.store.get_qr_code(qr_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    async def list_qr_codes(self, user_id: str) -> List[QRCode]:
        return await self.store.list_qr_codes_by_user(user_id)

    async def update_qr_code(
        self, user_id: str, qr_id: str, patch: QRCodePatch
    ) -> Optional[QRCode]:
        """Apply a patch to a QR code.

        Returns:
            Updated record, or None if absent or not owned by user_id

        Raises:
            ValidationError: If a patched field is invalid or the group is unknown
        """
        changes = patch.changes()
        errors = self._validate_code_fields(changes)
        if changes.get("group_id") is not None:
            errors.update(await self._check_group_reference(user_id, changes["group_id"]))
        if errors:
            raise ValidationError(errors)

        existing = await self.get_qr_code(user_id, qr_id)
        if existing is None:
            return None

        updated = await self.store.update_qr_code(qr_id, patch)
        if updated is not None and self.cache:
            await self.cache.invalidate(updated.short_code)
        if updated is not None:
            self.logger.info(f"Updated QR code {qr_id}: {sorted(changes)}")
        return updated

    async def set_active(self, user_id: str, qr_id: str, is_active: bool) -> Optional[QRCode]:
        return await self.update_qr_code(user_id, qr_id, QRCodePatch(is_active=is_active))

    async def delete_qr_code(self, user_id: str, qr_id: str) -> bool:
        existing = await self.get_qr_code(user_id, qr_id)
        if existing is None:
            return False

        deleted = await self.store.delete_qr_code(qr_id)
        if deleted and self.cache:
            await self.cache.invalidate(existing.short_code)
        return deleted

    async def get_qr_code_stats(
        self, user_id: str, qr_id: str, now: Optional[datetime] = None
    ) -> Optional[CodeStats]:
        record = await self.get_qr_code(user_id, qr_id)
        if record is None:
            return None
        return compute_code_stats(record, now=now)

    # Scanning

    async def resolve(self, short_code: str, user_id: Optional[str] = None) -> Resolution:
        """Resolve a scanned short code (see RedirectResolver.resolve)."""
        return await self.resolver.resolve(short_code, user_id=user_id)

    # Lifecycle

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        store_healthy = await self.store.health_check()

        cache_healthy = True
        if self.cache and self.cache.enabled:
            cache_healthy = await self.cache.ping()

        return {
            "database": store_healthy,
            "cache": cache_healthy,
            "overall": store_healthy and cache_healthy,
        }

    async def close(self) -> None:
        """Finish background accounting and close connections."""
        await self.resolver.drain()
        await self.store.close()
        if self.cache:
            await self.cache.close()
