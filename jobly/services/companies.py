from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from asyncpg import exceptions as pg_exc  # type: ignore[import-untyped]

from jobly.services.database import get_database
from jobly.services.repository import (
    QueryExecutor,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
    coerce_json_list,
)
from jobly.services.sql import PredicateKind, PredicateSpec, sql_for_filters, sql_for_partial_update

logger = logging.getLogger(__name__)

COMPANY_FIELD_MAP: dict[str, str] = {
    "numEmployees": "num_employees",
    "logoUrl": "logo_url",
}
COMPANY_IMMUTABLE_FIELDS = {"handle"}

COMPANY_FILTERS: tuple[PredicateSpec, ...] = (
    PredicateSpec("name", "name", PredicateKind.SUBSTRING),
    PredicateSpec("min_employees", "num_employees", PredicateKind.NUMERIC_MIN),
    PredicateSpec("max_employees", "num_employees", PredicateKind.NUMERIC_MAX),
)

COMPANY_COLUMNS = """
  handle,
  name,
  description,
  num_employees as "numEmployees",
  logo_url as "logoUrl"
"""


class CompanyRepository:
    def __init__(self, db: QueryExecutor) -> None:
        self.db = db

    async def create(
        self,
        *,
        handle: str,
        name: str,
        description: str,
        num_employees: int | None = None,
        logo_url: str | None = None,
    ) -> dict[str, Any]:
        try:
            row = await self.db.fetchrow(
                f"""
                insert into companies (handle, name, description, num_employees, logo_url)
                values ($1, $2, $3, $4, $5)
                on conflict (handle) do nothing
                returning {COMPANY_COLUMNS}
                """,
                handle,
                name,
                description,
                num_employees,
                logo_url,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"duplicate company name: {name}") from exc
        if row is None:
            logger.warning("company create conflict handle=%s", handle)
            raise RepositoryConflictError(f"duplicate company: {handle}")
        logger.info("company created handle=%s", handle)
        return row

    async def find_all(
        self,
        *,
        name: str | None = None,
        min_employees: Any = None,
        max_employees: Any = None,
    ) -> list[dict[str, Any]]:
        where_sql, values = sql_for_filters(
            {"name": name, "min_employees": min_employees, "max_employees": max_employees},
            COMPANY_FILTERS,
        )
        return await self.db.fetch(
            f"""
            select {COMPANY_COLUMNS}
            from companies
            {where_sql}
            order by name
            """,
            *values,
        )

    async def get(self, handle: str) -> dict[str, Any]:
        row = await self.db.fetchrow(
            """
            select
              c.handle,
              c.name,
              c.description,
              c.num_employees as "numEmployees",
              c.logo_url as "logoUrl",
              coalesce(
                json_agg(
                  json_build_object('id', j.id, 'title', j.title, 'salary', j.salary, 'equity', j.equity)
                  order by j.id
                ) filter (where j.id is not null),
                '[]'
              ) as jobs
            from companies c
            left join jobs j on j.company_handle = c.handle
            where c.handle = $1
            group by c.handle
            """,
            handle,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no company: {handle}")
        row["jobs"] = coerce_json_list(row.get("jobs"))
        return row

    async def update(self, handle: str, data: dict[str, Any]) -> dict[str, Any]:
        if COMPANY_IMMUTABLE_FIELDS.intersection(data):
            raise RepositoryValidationError("cannot update: handle")

        set_sql, values = sql_for_partial_update(data, COMPANY_FIELD_MAP)
        handle_token = f"${len(values) + 1}"
        try:
            row = await self.db.fetchrow(
                f"""
                update companies
                set {set_sql}
                where handle = {handle_token}
                returning {COMPANY_COLUMNS}
                """,
                *values,
                handle,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"duplicate company name: {data.get('name')}") from exc
        if row is None:
            raise RepositoryNotFoundError(f"no company: {handle}")
        logger.info("company updated handle=%s fields=%s", handle, sorted(data))
        return row

    async def remove(self, handle: str) -> None:
        row = await self.db.fetchrow(
            """
            delete from companies
            where handle = $1
            returning handle
            """,
            handle,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no company: {handle}")
        logger.info("company removed handle=%s", handle)


@lru_cache
def get_company_repository() -> CompanyRepository:
    return CompanyRepository(get_database())
