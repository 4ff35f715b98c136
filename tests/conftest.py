"""Pytest configuration and fixtures."""

import asyncio
import random
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from config import Config
from dynqr.database.memory import InMemoryRecordStore
from dynqr.service import QRCodeService
from dynqr.shortcode import ShortCodeGenerator
from dynqr.common.logging_config import setup_logging
from web_app import create_app


class SlowMemoryStore(InMemoryRecordStore):
    """In-memory store whose loads and saves yield to the event loop.

    Every read-modify-write then spans several scheduling points, which is
    what a networked store looks like to concurrent callers.
    """

    def __init__(self, *args, delay: float = 0.001, lookup_delay: float = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay
        self.lookup_delay = lookup_delay

    async def _read(self, qr_id):
        await asyncio.sleep(self.delay)
        return await super()._read(qr_id)

    async def _write(self, record):
        await asyncio.sleep(self.delay)
        await super()._write(record)

    async def get_qr_code_by_short_code(self, short_code):
        record = await super().get_qr_code_by_short_code(short_code)
        # Hold the looked-up copy before handing it back
        await asyncio.sleep(self.lookup_delay)
        return record


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def short_code_generator():
    """Create short code generator with a seeded random source."""
    return ShortCodeGenerator(default_length=9, rng=random.Random(1234))


@pytest.fixture
async def store(short_code_generator, logger) -> AsyncGenerator[InMemoryRecordStore, None]:
    """Create in-memory record store."""
    store = InMemoryRecordStore(generator=short_code_generator, logger=logger)
    yield store
    await store.close()


@pytest.fixture
async def service(store, logger) -> QRCodeService:
    """Create service instance."""
    return QRCodeService(
        store=store,
        cache=None,  # No cache for tests
        logger=logger,
    )


@pytest.fixture
def config():
    return Config(base_url="http://testserver")


@pytest.fixture
async def app(store, service, config):
    """Create test FastAPI app."""
    return create_app(
        store_instance=store,
        cache_instance=None,
        service_instance=service,
        config=config,
    )


@pytest.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def user_id():
    return "user-alice"


@pytest.fixture
def other_user_id():
    return "user-bob"


@pytest.fixture
def auth_headers(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/menu",
        "https://github.com/user/repo",
        "https://shop.example.com/products/42",
    ]


@pytest.fixture
async def slow_store(short_code_generator, logger) -> AsyncGenerator[SlowMemoryStore, None]:
    """In-memory store with I/O-like latency on every load and save."""
    store = SlowMemoryStore(generator=short_code_generator, logger=logger)
    yield store
    await store.close()
