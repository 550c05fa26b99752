from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any

from asyncpg import exceptions as pg_exc

from jobly.services.repository import (
    INT4_MAX,
    INT4_MIN,
    Database,
    RepositoryNotFoundError,
    RepositoryValidationError,
    coerce_non_negative_int,
    coerce_text,
    get_database,
)
from jobly.services.sql import JOB_FILTERS, QueryParams, build_predicate, compile_partial_update

logger = logging.getLogger(__name__)

JOB_COLUMNS_SQL = "id, title, salary, equity, company_handle"
JOB_UPDATABLE_FIELDS = ("title", "salary", "equity")
JOB_IMMUTABLE_FIELDS = ("id", "companyHandle")


class JobRepository:
    def __init__(self, database: Database) -> None:
        self._database = database

    async def create(
        self,
        *,
        title: str,
        salary: int | None = None,
        equity: Decimal | str | None = None,
        company_handle: str,
    ) -> dict[str, Any]:
        normalized_title = _require_title(title)
        normalized_salary = coerce_non_negative_int(salary, field="salary")
        normalized_equity = coerce_equity(equity)
        normalized_handle = coerce_text(company_handle)
        if not normalized_handle:
            raise RepositoryValidationError("companyHandle must be a non-empty string")

        async with self._database.connection() as conn:
            try:
                async with conn.transaction():
                    company_row = await conn.fetchrow(
                        """
                        select handle
                        from companies
                        where handle = $1
                        for share
                        """,
                        normalized_handle,
                    )
                    if not company_row:
                        raise RepositoryValidationError(f"company does not exist: {normalized_handle}")

                    row = await conn.fetchrow(
                        f"""
                        insert into jobs (title, salary, equity, company_handle)
                        values ($1, $2, $3, $4)
                        returning {JOB_COLUMNS_SQL}
                        """,
                        normalized_title,
                        normalized_salary,
                        normalized_equity,
                        normalized_handle,
                    )
            except pg_exc.ForeignKeyViolationError as exc:
                raise RepositoryValidationError(f"company does not exist: {normalized_handle}") from exc

        logger.info("job created id=%s company_handle=%s", row["id"], normalized_handle)
        return self._job_row_to_dict(row)

    async def get(self, job_id: int) -> dict[str, Any]:
        _require_storable_id(job_id)
        async with self._database.connection() as conn:
            row = await conn.fetchrow(
                f"""
                select {JOB_COLUMNS_SQL}
                from jobs
                where id = $1
                """,
                job_id,
            )

        if not row:
            raise RepositoryNotFoundError(f"no job with id: {job_id}")
        return self._job_row_to_dict(row)

    async def list_all(self) -> list[dict[str, Any]]:
        return await self.list_filtered({})

    async def list_filtered(self, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
        params = QueryParams()
        predicate = build_predicate(filters, JOB_FILTERS, params)

        async with self._database.connection() as conn:
            rows = await conn.fetch(
                f"""
                select
                  j.id,
                  j.title,
                  j.salary,
                  j.equity,
                  j.company_handle,
                  c.name as company_name
                from jobs j
                left join companies c on c.handle = j.company_handle
                where {predicate.sql}
                order by j.title asc, j.id asc
                """,
                *params.values,
            )
        return [self._job_list_row_to_dict(row) for row in rows]

    async def update(self, job_id: int, fields: Mapping[str, Any]) -> dict[str, Any]:
        changes = self._normalize_changes(fields)
        _require_storable_id(job_id)
        params = QueryParams()
        assignment = compile_partial_update(changes, {}, params)
        id_token = params.bind(job_id)

        async with self._database.connection() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f"""
                    update jobs
                    set {assignment.sql}
                    where id = {id_token}
                    returning {JOB_COLUMNS_SQL}
                    """,
                    *params.values,
                )

        if not row:
            raise RepositoryNotFoundError(f"no job with id: {job_id}")

        logger.info("job updated id=%s fields=%s", job_id, ",".join(changes))
        return self._job_row_to_dict(row)

    async def remove(self, job_id: int) -> dict[str, Any]:
        _require_storable_id(job_id)
        async with self._database.connection() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    delete from jobs
                    where id = $1
                    returning id
                    """,
                    job_id,
                )

        if not row:
            raise RepositoryNotFoundError(f"no job with id: {job_id}")

        logger.info("job removed id=%s", row["id"])
        return {"id": row["id"]}

    @staticmethod
    def _normalize_changes(fields: Mapping[str, Any]) -> dict[str, Any]:
        immutable = [name for name in JOB_IMMUTABLE_FIELDS if name in fields]
        if immutable:
            raise RepositoryValidationError(f"{', '.join(immutable)} cannot be changed")
        unsupported = sorted(set(fields) - set(JOB_UPDATABLE_FIELDS))
        if unsupported:
            raise RepositoryValidationError(f"unsupported fields: {', '.join(unsupported)}")

        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "title":
                changes[name] = _require_title(value)
            elif name == "salary":
                changes[name] = coerce_non_negative_int(value, field="salary")
            else:
                changes[name] = coerce_equity(value)
        return changes

    @staticmethod
    def _job_row_to_dict(row: Any) -> dict[str, Any]:
        return {
            "id": row["id"],
            "title": row["title"],
            "salary": row["salary"],
            "equity": row["equity"],
            "company_handle": row["company_handle"],
        }

    @staticmethod
    def _job_list_row_to_dict(row: Any) -> dict[str, Any]:
        return {
            "id": row["id"],
            "title": row["title"],
            "salary": row["salary"],
            "equity": row["equity"],
            "company_handle": row["company_handle"],
            "company_name": row["company_name"],
        }


def coerce_equity(value: Any) -> Decimal | None:
    """Equity is a fraction in [0, 1], kept as an exact decimal end to end."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise RepositoryValidationError("equity must be a decimal between 0 and 1")
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise RepositoryValidationError("equity must be a decimal between 0 and 1") from exc
    else:
        raise RepositoryValidationError("equity must be a decimal between 0 and 1")

    if not parsed.is_finite() or parsed < 0 or parsed > 1:
        raise RepositoryValidationError("equity must be a decimal between 0 and 1")
    return parsed


def _require_storable_id(job_id: Any) -> None:
    # Ids outside the serial range can never match a row.
    if isinstance(job_id, bool) or not isinstance(job_id, int) or not INT4_MIN <= job_id <= INT4_MAX:
        raise RepositoryNotFoundError(f"no job with id: {job_id}")


def _require_title(value: Any) -> str:
    normalized = coerce_text(value) if isinstance(value, str) else None
    if not normalized:
        raise RepositoryValidationError("title must be a non-empty string")
    return normalized


@lru_cache
def get_job_repository() -> JobRepository:
    return JobRepository(get_database())
