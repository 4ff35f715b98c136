#!/usr/bin/env python3
"""
Main entry point for the dynamic QR service.

Concurrency: the server handles many connections per process via async I/O
(FastAPI + asyncpg pool + redis.asyncio). Scan accounting is serialized per
record by the record store, so concurrent scans of one code never lose counts.
WORKERS > 1 requires STORAGE_BACKEND=postgres: the memory store is per process.

Usage:
    python app.py

Environment variables:
    STORAGE_BACKEND - 'memory' (default) or 'postgres'
    DATABASE_URL - PostgreSQL connection URL
    DATABASE_CREATE_TABLES - Set to '1' to create tables on startup
    REDIS_URL - Redis connection URL (optional)
    BASE_URL - Public origin used in scan URLs
    PORT - Port to listen on
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import Config, load_config
from dynqr.database.base import RecordStoreBase
from dynqr.database.cache import RedisCache
from dynqr.database.memory import InMemoryRecordStore
from dynqr.database.postgres import PostgresRecordStore
from dynqr.service import QRCodeService
from dynqr.shortcode import ShortCodeGenerator
from dynqr.common.logging_config import setup_logging
from web_app import create_app


def build_store(config: Config, logger) -> RecordStoreBase:
    """Create the record store selected by configuration."""
    generator = ShortCodeGenerator(
        default_length=config.short_code_length,
        max_attempts=config.max_collision_retries,
    )
    options = dict(
        generator=generator,
        short_code_length=config.short_code_length,
        record_id_length=config.record_id_length,
        group_id_length=config.group_id_length,
        logger=logger,
    )

    if config.storage_backend == "postgres":
        logger.info("Using PostgreSQL record store")
        return PostgresRecordStore(db_config=config.database_url, **options)

    logger.info("Using in-memory record store")
    return InMemoryRecordStore(**options)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting dynamic QR service...")

    store = build_store(config, logger)
    await store.initialize()

    cache = None
    if config.redis_url:
        logger.info("Connecting to Redis")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache.connect()
    else:
        logger.info("Redis caching disabled")

    service = QRCodeService(
        store=store,
        cache=cache,
        logger=logger,
        max_create_attempts=config.max_create_attempts,
        accounting_timeout_seconds=config.accounting_timeout_seconds,
    )

    app.state.store = store
    app.state.cache = cache
    app.state.service = service

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down dynamic QR service...")
    await service.close()
    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Dynamic QR Service")
    logger.info(f"Configuration: {config.model_dump(exclude={'database_url', 'redis_url'})}")

    if config.workers > 1 and config.storage_backend == "memory":
        logger.error("WORKERS > 1 needs a shared store; set STORAGE_BACKEND=postgres")
        sys.exit(1)

    # Instances are created in lifespan
    app = create_app(
        store_instance=None,
        cache_instance=None,
        service_instance=None,
        config=config,
    )

    app.state.config = config
    app.state.logger = logger
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
