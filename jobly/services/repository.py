from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from jobly.core.config import get_settings

logger = logging.getLogger(__name__)

DIGITS_RE = re.compile(r"[0-9]+")

# Bounds of the Postgres `integer` columns and `serial` keys.
INT4_MIN = -2_147_483_648
INT4_MAX = 2_147_483_647


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryConflictError(RepositoryError):
    """Raised when a write collides with an existing unique key."""


class RepositoryValidationError(RepositoryError):
    """Raised when input validation fails before persistence."""


class RepositoryStoreError(RepositoryError):
    """Raised when the store fails unexpectedly while running a query."""


class Database:
    """Owns the asyncpg pool shared by every repository.

    The pool is created on first use and closed by the application lifespan.
    Unexpected driver errors escaping a ``connection()`` block are reported as
    ``RepositoryStoreError``; repositories translate the constraint errors they
    expect before that happens.
    """

    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout: float = 15.0,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Any]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.exception("database query failed")
            raise RepositoryStoreError("database error") from exc

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("JOBLY_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc


def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def coerce_non_negative_int(value: Any, *, field: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RepositoryValidationError(f"{field} must be a non-negative integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and DIGITS_RE.fullmatch(value.strip()):
        parsed = int(value.strip())
    else:
        raise RepositoryValidationError(f"{field} must be a non-negative integer")
    if parsed < 0:
        raise RepositoryValidationError(f"{field} must be a non-negative integer")
    if parsed > INT4_MAX:
        raise RepositoryValidationError(f"{field} must be a non-negative integer no greater than {INT4_MAX}")
    return parsed


@lru_cache
def get_database() -> Database:
    settings = get_settings()
    return Database(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout=settings.database_command_timeout_seconds,
    )
