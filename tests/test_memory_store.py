"""Tests for the in-memory record store."""

import asyncio
from datetime import datetime, timezone

import pytest

from dynqr.database.models import GroupCreate, GroupPatch, QRCodeCreate, QRCodePatch
from dynqr.errors import DuplicateEmail, DuplicateUser, GenerationExhausted
from dynqr.shortcode import ShortCodeGenerator
from dynqr.database.memory import InMemoryRecordStore


@pytest.mark.asyncio
class TestQRCodeRecords:
    """Test QR code CRUD."""

    async def test_create_defaults(self, store, user_id, sample_urls):
        record = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))

        assert len(record.id) == 6
        assert len(record.short_code) == 9
        assert ShortCodeGenerator.is_valid_format(record.short_code)
        assert record.is_active is True
        assert record.scan_count == 0
        assert record.scan_history == []
        assert record.last_scanned is None
        assert record.foreground_color == "#000000"
        assert record.background_color == "#ffffff"
        assert record.size == 256
        assert record.created_at.tzinfo is not None

    async def test_lookup_by_id_and_short_code(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Repo", destination_url=sample_urls[1]))

        by_id = await store.get_qr_code(created.id)
        by_code = await store.get_qr_code_by_short_code(created.short_code)

        assert by_id == created
        assert by_code == created
        assert await store.short_code_exists(created.short_code)

    async def test_lookups_of_absent_records_return_none(self, store):
        assert await store.get_qr_code("nope42") is None
        assert await store.get_qr_code_by_short_code("Hk3mPq7xZ") is None
        assert await store.get_group("missing") is None
        assert await store.get_user("nobody") is None

    async def test_returned_records_are_copies(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))
        created.title = "Changed locally"
        created.scan_history.append(datetime.now(timezone.utc))

        stored = await store.get_qr_code(created.id)
        assert stored.title == "Menu"
        assert stored.scan_history == []

    async def test_update_applies_only_set_fields(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))

        updated = await store.update_qr_code(
            created.id, QRCodePatch(destination_url=sample_urls[2], size=512)
        )

        assert updated.destination_url == sample_urls[2]
        assert updated.size == 512
        assert updated.title == "Menu"
        assert updated.short_code == created.short_code
        assert updated.created_at == created.created_at

    async def test_update_absent_returns_none(self, store):
        assert await store.update_qr_code("nope42", QRCodePatch(title="x")) is None

    async def test_delete_frees_short_code(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))

        assert await store.delete_qr_code(created.id) is True
        assert await store.get_qr_code(created.id) is None
        assert await store.get_qr_code_by_short_code(created.short_code) is None
        assert not await store.short_code_exists(created.short_code)

        assert await store.delete_qr_code(created.id) is False

    async def test_list_by_user_newest_first(self, store, user_id, other_user_id, sample_urls):
        created = []
        for i, url in enumerate(sample_urls):
            created.append(await store.create_qr_code(user_id, QRCodeCreate(title=f"Code {i}", destination_url=url)))
            await asyncio.sleep(0.002)
        await store.create_qr_code(other_user_id, QRCodeCreate(title="Other", destination_url=sample_urls[0]))

        listed = await store.list_qr_codes_by_user(user_id)

        assert [r.id for r in listed] == [r.id for r in reversed(created)]

    async def test_short_codes_are_unique(self, store, user_id, sample_urls):
        records = [
            await store.create_qr_code(user_id, QRCodeCreate(title=f"Code {i}", destination_url=sample_urls[0]))
            for i in range(100)
        ]
        assert len({r.short_code for r in records}) == 100
        assert len({r.id for r in records}) == 100

    async def test_create_fails_when_generation_exhausted(self, user_id, sample_urls, logger):
        class Constant:
            def choices(self, population, k):
                return ["A"] * k

        generator = ShortCodeGenerator(max_attempts=3, rng=Constant())
        store = InMemoryRecordStore(generator=generator, logger=logger)
        await store.create_qr_code(user_id, QRCodeCreate(title="First", destination_url=sample_urls[0]))

        with pytest.raises(GenerationExhausted):
            await store.create_qr_code(user_id, QRCodeCreate(title="Second", destination_url=sample_urls[0]))

        assert len(await store.list_qr_codes_by_user(user_id)) == 1


@pytest.mark.asyncio
class TestScanRecording:
    """Test record_scan."""

    async def test_record_scan_appends_history(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))
        first = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        second = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)

        await store.record_scan(created.id, first)
        updated = await store.record_scan(created.id, second)

        assert updated.scan_count == 2
        assert updated.scan_history == [first, second]
        assert updated.last_scanned == second

    async def test_record_scan_absent_returns_none(self, store):
        assert await store.record_scan("nope42", datetime.now(timezone.utc)) is None

    async def test_record_scan_keeps_other_fields(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))
        await store.update_qr_code(created.id, QRCodePatch(title="Renamed"))

        updated = await store.record_scan(created.id, datetime.now(timezone.utc))

        assert updated.title == "Renamed"
        assert updated.short_code == created.short_code

    async def test_record_scan_skips_deactivated(self, store, user_id, sample_urls):
        created = await store.create_qr_code(user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0]))
        await store.update_qr_code(created.id, QRCodePatch(is_active=False))

        returned = await store.record_scan(created.id, datetime.now(timezone.utc))

        assert returned.is_active is False
        assert returned.scan_count == 0
        assert returned.last_scanned is None
        assert (await store.get_qr_code(created.id)).scan_history == []


@pytest.mark.asyncio
class TestGroups:
    """Test group records."""

    async def test_create_and_get_group(self, store, user_id):
        group = await store.create_group(user_id, GroupCreate(name="Cafe", base_url="https://cafe.example.com"))

        assert len(group.id) == 9
        assert await store.get_group(group.id) == group

    async def test_update_group(self, store, user_id):
        group = await store.create_group(user_id, GroupCreate(name="Cafe", base_url="https://cafe.example.com"))

        updated = await store.update_group(group.id, GroupPatch(description="Window posters"))

        assert updated.description == "Window posters"
        assert updated.name == "Cafe"
        assert await store.update_group("missing", GroupPatch(name="x")) is None

    async def test_delete_group_detaches_members(self, store, user_id, sample_urls):
        group = await store.create_group(user_id, GroupCreate(name="Cafe", base_url="https://example.com"))
        member = await store.create_qr_code(
            user_id, QRCodeCreate(title="Menu", destination_url=sample_urls[0], group_id=group.id)
        )
        loose = await store.create_qr_code(user_id, QRCodeCreate(title="Repo", destination_url=sample_urls[1]))

        assert await store.delete_group(group.id) is True

        assert await store.get_group(group.id) is None
        assert (await store.get_qr_code(member.id)).group_id is None
        assert (await store.get_qr_code(loose.id)).group_id is None
        assert await store.list_qr_codes_by_group(group.id) == []
        assert await store.delete_group(group.id) is False

    async def test_list_group_members(self, store, user_id, sample_urls):
        group = await store.create_group(user_id, GroupCreate(name="Cafe", base_url="https://example.com"))
        first = await store.create_qr_code(
            user_id, QRCodeCreate(title="A", destination_url=sample_urls[0], group_id=group.id)
        )
        await asyncio.sleep(0.002)
        second = await store.create_qr_code(
            user_id, QRCodeCreate(title="B", destination_url=sample_urls[0], group_id=group.id)
        )
        await store.create_qr_code(user_id, QRCodeCreate(title="C", destination_url=sample_urls[0]))

        members = await store.list_qr_codes_by_group(group.id)
        assert [r.id for r in members] == [second.id, first.id]

    async def test_list_groups_by_user(self, store, user_id, other_user_id):
        mine = await store.create_group(user_id, GroupCreate(name="Mine", base_url="https://a.example.com"))
        await store.create_group(other_user_id, GroupCreate(name="Theirs", base_url="https://b.example.com"))

        assert [g.id for g in await store.list_groups_by_user(user_id)] == [mine.id]


@pytest.mark.asyncio
class TestUsers:
    """Test user profiles."""

    async def test_create_and_lookup_user(self, store, user_id):
        user = await store.create_user(user_id, "alice@example.com", "Alice")

        assert await store.get_user(user_id) == user
        assert await store.get_user_by_email("ALICE@example.com") == user

    async def test_duplicate_email(self, store, user_id, other_user_id):
        await store.create_user(user_id, "alice@example.com", "Alice")

        with pytest.raises(DuplicateEmail):
            await store.create_user(other_user_id, "Alice@Example.com", "Imposter")

    async def test_reregistering_user_id_is_rejected(self, store, user_id):
        user = await store.create_user(user_id, "alice@example.com", "Alice")

        with pytest.raises(DuplicateUser):
            await store.create_user(user_id, "alice@new.example.com", "Alice")

        assert await store.get_user(user_id) == user
        assert await store.get_user_by_email("alice@example.com") == user
        assert await store.get_user_by_email("alice@new.example.com") is None

    async def test_health_check(self, store):
        assert await store.health_check() is True
