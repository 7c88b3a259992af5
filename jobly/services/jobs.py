from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Any

from asyncpg import exceptions as pg_exc  # type: ignore[import-untyped]

from jobly.services.database import get_database
from jobly.services.repository import (
    QueryExecutor,
    RepositoryError,
    RepositoryNotFoundError,
    RepositoryValidationError,
)
from jobly.services.sql import PredicateKind, PredicateSpec, sql_for_filters, sql_for_partial_update

logger = logging.getLogger(__name__)

JOB_FIELD_MAP: dict[str, str] = {}
JOB_IMMUTABLE_FIELDS = {"id", "companyHandle"}

JOB_FILTERS: tuple[PredicateSpec, ...] = (
    PredicateSpec("title", "title", PredicateKind.SUBSTRING),
    PredicateSpec("min_salary", "salary", PredicateKind.NUMERIC_MIN),
    PredicateSpec("has_equity", "equity", PredicateKind.BOOLEAN_FLAG, literal="equity > 0"),
    PredicateSpec("company_handle", "company_handle", PredicateKind.EQUALS),
)

JOB_COLUMNS = """
  id,
  title,
  salary,
  equity,
  company_handle as "companyHandle"
"""


class JobRepository:
    def __init__(self, db: QueryExecutor) -> None:
        self.db = db

    async def create(
        self,
        *,
        title: str,
        company_handle: str,
        salary: int | None = None,
        equity: Decimal | None = None,
    ) -> dict[str, Any]:
        try:
            row = await self.db.fetchrow(
                f"""
                insert into jobs (title, salary, equity, company_handle)
                values ($1, $2, $3, $4)
                returning {JOB_COLUMNS}
                """,
                title,
                salary,
                equity,
                company_handle,
            )
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError(f"no company: {company_handle}") from exc
        if row is None:
            raise RepositoryError("job insert returned no row")
        logger.info("job created id=%s company=%s", row["id"], company_handle)
        return row

    async def find_all(
        self,
        *,
        title: str | None = None,
        min_salary: Any = None,
        has_equity: Any = None,
        company_handle: str | None = None,
    ) -> list[dict[str, Any]]:
        where_sql, values = sql_for_filters(
            {
                "title": title,
                "min_salary": min_salary,
                "has_equity": has_equity,
                "company_handle": company_handle,
            },
            JOB_FILTERS,
        )
        return await self.db.fetch(
            f"""
            select {JOB_COLUMNS}
            from jobs
            {where_sql}
            order by title, id
            """,
            *values,
        )

    async def get(self, job_id: int) -> dict[str, Any]:
        row = await self.db.fetchrow(
            f"""
            select {JOB_COLUMNS}
            from jobs
            where id = $1
            """,
            job_id,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no job: {job_id}")
        return row

    async def update(self, job_id: int, data: dict[str, Any]) -> dict[str, Any]:
        immutable = sorted(JOB_IMMUTABLE_FIELDS.intersection(data))
        if immutable:
            raise RepositoryValidationError(f"cannot update: {', '.join(immutable)}")

        set_sql, values = sql_for_partial_update(data, JOB_FIELD_MAP)
        id_token = f"${len(values) + 1}"
        row = await self.db.fetchrow(
            f"""
            update jobs
            set {set_sql}
            where id = {id_token}
            returning {JOB_COLUMNS}
            """,
            *values,
            job_id,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no job: {job_id}")
        logger.info("job updated id=%s fields=%s", job_id, sorted(data))
        return row

    async def remove(self, job_id: int) -> None:
        row = await self.db.fetchrow(
            """
            delete from jobs
            where id = $1
            returning id
            """,
            job_id,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no job: {job_id}")
        logger.info("job removed id=%s", job_id)


@lru_cache
def get_job_repository() -> JobRepository:
    return JobRepository(get_database())
