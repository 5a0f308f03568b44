"""
=====================================================
Voice Lead Agent - Async Database Connection Pool
=====================================================
Provides the shared asyncpg connection pool for all services.

The pool is created lazily and the connect step races a short timeout.
A failed connect is remembered for a cooldown period so a database
outage does not add the connect timeout to every call turn.
"""

import asyncio
import json
import time
from typing import Optional
from urllib.parse import urlparse

import asyncpg
from loguru import logger


VALID_SCHEMES = ("postgres", "postgresql")


class DatabaseUnavailableError(Exception):
    """Raised when the durable store cannot be reached or is not configured"""


def validate_database_url(dsn: str) -> bool:
    """Check the connection string looks like a PostgreSQL DSN before dialing it"""
    if not dsn:
        return False
    try:
        parsed = urlparse(dsn)
    except ValueError:
        return False
    return parsed.scheme in VALID_SCHEMES and bool(parsed.hostname)


async def _init_connection(conn: asyncpg.Connection):
    """Decode jsonb columns to Python objects"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class Database:
    """
    Owner of the asyncpg pool.

    get_pool() either returns a live pool or raises DatabaseUnavailableError;
    callers on the call path catch it and fall back.
    """

    def __init__(
        self,
        dsn: str,
        connect_timeout: float = 5.0,
        retry_cooldown: float = 30.0,
        min_size: int = 1,
        max_size: int = 10,
    ):
        self.dsn = dsn
        self.connect_timeout = connect_timeout
        self.retry_cooldown = retry_cooldown
        self.min_size = min_size
        self.max_size = max_size

        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()
        self._last_failure: Optional[float] = None

    @property
    def is_configured(self) -> bool:
        return validate_database_url(self.dsn)

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def get_pool(self) -> asyncpg.Pool:
        """
        Get or create the shared asyncpg connection pool.

        Returns:
            asyncpg.Pool: The connection pool

        Raises:
            DatabaseUnavailableError: not configured, malformed DSN,
                connect timeout or a recent failure still cooling down
        """
        if self._pool is not None:
            return self._pool

        if not self.dsn:
            raise DatabaseUnavailableError("DATABASE_URL is not configured")
        if not validate_database_url(self.dsn):
            raise DatabaseUnavailableError("DATABASE_URL is not a valid PostgreSQL connection string")

        if self._last_failure is not None:
            elapsed = time.monotonic() - self._last_failure
            if elapsed < self.retry_cooldown:
                raise DatabaseUnavailableError(
                    f"Database unavailable (retry in {self.retry_cooldown - elapsed:.0f}s)"
                )

        async with self._lock:
            if self._pool is not None:
                return self._pool
            try:
                self._pool = await asyncio.wait_for(
                    asyncpg.create_pool(
                        dsn=self.dsn,
                        min_size=self.min_size,
                        max_size=self.max_size,
                        command_timeout=30,
                        init=_init_connection,
                    ),
                    timeout=self.connect_timeout,
                )
                self._last_failure = None
                logger.info("Database connection pool created successfully")
            except asyncio.TimeoutError as e:
                self._last_failure = time.monotonic()
                logger.error(f"Database: Connection timed out after {self.connect_timeout}s")
                raise DatabaseUnavailableError("Database connection timed out") from e
            except Exception as e:
                self._last_failure = time.monotonic()
                logger.error(f"Failed to create database pool: {e}")
                raise DatabaseUnavailableError(str(e)) from e

        return self._pool

    async def close(self):
        """Close the connection pool (call on app shutdown)."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")


def load_json(value, default=None):
    """jsonb values arrive decoded from the pool, but text columns and old rows may not"""
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"Database: Ignoring undecodable JSON value: {value!r:.80}")
        return default
