from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from asyncpg import exceptions as pg_exc  # type: ignore[import-untyped]

from jobly.services.repository import (
    Database,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
    coerce_non_negative_int,
    coerce_text,
    get_database,
)
from jobly.services.sql import COMPANY_FILTERS, QueryParams, build_predicate, compile_partial_update

logger = logging.getLogger(__name__)

COMPANY_COLUMNS_SQL = "handle, name, description, num_employees, logo_url"
COMPANY_COLUMN_NAMES = {"numEmployees": "num_employees", "logoUrl": "logo_url"}
COMPANY_UPDATABLE_FIELDS = ("name", "description", "numEmployees", "logoUrl")
HANDLE_MAX_LENGTH = 25


class CompanyRepository:
    def __init__(self, database: Database) -> None:
        self._database = database

    async def create(
        self,
        *,
        handle: str,
        name: str,
        description: str,
        num_employees: int | None = None,
        logo_url: str | None = None,
    ) -> dict[str, Any]:
        normalized_handle = coerce_text(handle)
        if not normalized_handle or len(normalized_handle) > HANDLE_MAX_LENGTH:
            raise RepositoryValidationError(f"handle must be 1-{HANDLE_MAX_LENGTH} characters")
        normalized_name = _require_text(name, field="name")
        normalized_description = _require_string(description, field="description")
        normalized_num_employees = coerce_non_negative_int(num_employees, field="numEmployees")

        async with self._database.connection() as conn:
            try:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f"""
                        insert into companies (handle, name, description, num_employees, logo_url)
                        values ($1, $2, $3, $4, $5)
                        returning {COMPANY_COLUMNS_SQL}
                        """,
                        normalized_handle,
                        normalized_name,
                        normalized_description,
                        normalized_num_employees,
                        logo_url,
                    )
            except pg_exc.UniqueViolationError as exc:
                if exc.constraint_name == "companies_name_key":
                    raise RepositoryConflictError(f"duplicate company name: {normalized_name}") from exc
                raise RepositoryConflictError(f"duplicate company: {normalized_handle}") from exc

        logger.info("company created handle=%s", normalized_handle)
        return self._company_row_to_dict(row)

    async def list_all(self) -> list[dict[str, Any]]:
        return await self.list_filtered({})

    async def list_filtered(self, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
        params = QueryParams()
        predicate = build_predicate(filters, COMPANY_FILTERS, params)

        async with self._database.connection() as conn:
            rows = await conn.fetch(
                f"""
                select {COMPANY_COLUMNS_SQL}
                from companies
                where {predicate.sql}
                order by name asc, handle asc
                """,
                *params.values,
            )
        return [self._company_row_to_dict(row) for row in rows]

    async def get(self, handle: str) -> dict[str, Any]:
        async with self._database.connection() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                row = await conn.fetchrow(
                    f"""
                    select {COMPANY_COLUMNS_SQL}
                    from companies
                    where handle = $1
                    """,
                    handle,
                )
                if not row:
                    raise RepositoryNotFoundError(f"no company: {handle}")

                job_rows = await conn.fetch(
                    """
                    select id, title, salary, equity
                    from jobs
                    where company_handle = $1
                    order by id asc
                    """,
                    handle,
                )

        company = self._company_row_to_dict(row)
        company["jobs"] = [self._company_job_row_to_dict(job_row) for job_row in job_rows]
        return company

    async def update(self, handle: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        changes = self._normalize_changes(fields)
        params = QueryParams()
        assignment = compile_partial_update(changes, COMPANY_COLUMN_NAMES, params)
        handle_token = params.bind(handle)

        async with self._database.connection() as conn:
            try:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f"""
                        update companies
                        set {assignment.sql}
                        where handle = {handle_token}
                        returning {COMPANY_COLUMNS_SQL}
                        """,
                        *params.values,
                    )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError(f"duplicate company name: {changes.get('name')}") from exc

        if not row:
            raise RepositoryNotFoundError(f"no company: {handle}")

        logger.info("company updated handle=%s fields=%s", handle, ",".join(changes))
        return self._company_row_to_dict(row)

    async def remove(self, handle: str) -> dict[str, Any]:
        async with self._database.connection() as conn:
            async with conn.transaction():
                # Job rows go with the company through the FK cascade.
                row = await conn.fetchrow(
                    """
                    with removed as (
                      delete from companies
                      where handle = $1
                      returning handle
                    )
                    select
                      removed.handle,
                      (select count(*) from jobs where jobs.company_handle = removed.handle) as job_count
                    from removed
                    """,
                    handle,
                )

        if not row:
            raise RepositoryNotFoundError(f"no company: {handle}")

        logger.info("company removed handle=%s jobs_removed=%s", row["handle"], row["job_count"])
        return {"handle": row["handle"]}

    @staticmethod
    def _normalize_changes(fields: Mapping[str, Any]) -> dict[str, Any]:
        unsupported = sorted(set(fields) - set(COMPANY_UPDATABLE_FIELDS))
        if "handle" in unsupported:
            raise RepositoryValidationError("handle cannot be changed")
        if unsupported:
            raise RepositoryValidationError(f"unsupported fields: {', '.join(unsupported)}")

        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "name":
                changes[name] = _require_text(value, field="name")
            elif name == "description":
                changes[name] = _require_string(value, field="description")
            elif name == "numEmployees":
                changes[name] = coerce_non_negative_int(value, field="numEmployees")
            else:
                changes[name] = value
        return changes

    @staticmethod
    def _company_row_to_dict(row: Any) -> dict[str, Any]:
        return {
            "handle": row["handle"],
            "name": row["name"],
            "description": row["description"],
            "num_employees": row["num_employees"],
            "logo_url": row["logo_url"],
        }

    @staticmethod
    def _company_job_row_to_dict(row: Any) -> dict[str, Any]:
        return {
            "id": row["id"],
            "title": row["title"],
            "salary": row["salary"],
            "equity": row["equity"],
        }


def _require_text(value: Any, *, field: str) -> str:
    normalized = coerce_text(value) if isinstance(value, str) else None
    if not normalized:
        raise RepositoryValidationError(f"{field} must be a non-empty string")
    return normalized


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str):
        raise RepositoryValidationError(f"{field} must be a string")
    return value


@lru_cache
def get_company_repository() -> CompanyRepository:
    return CompanyRepository(get_database())
