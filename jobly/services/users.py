from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import bcrypt
from asyncpg import exceptions as pg_exc  # type: ignore[import-untyped]

from jobly.core.config import get_settings
from jobly.services.database import get_database
from jobly.services.repository import (
    QueryExecutor,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnauthorizedError,
    RepositoryValidationError,
)
from jobly.services.sql import sql_for_partial_update

logger = logging.getLogger(__name__)

USER_FIELD_MAP: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "isAdmin": "is_admin",
}
USER_IMMUTABLE_FIELDS = {"username"}

USER_COLUMNS = """
  username,
  first_name as "firstName",
  last_name as "lastName",
  email,
  is_admin as "isAdmin"
"""


class UserRepository:
    def __init__(self, db: QueryExecutor, *, bcrypt_work_factor: int) -> None:
        self.db = db
        self.bcrypt_work_factor = bcrypt_work_factor

    async def authenticate(self, username: str, password: str) -> dict[str, Any]:
        row = await self.db.fetchrow(
            f"""
            select {USER_COLUMNS}, password
            from users
            where username = $1
            """,
            username,
        )
        if row is not None and self._verify_password(password, row.pop("password")):
            return row
        raise RepositoryUnauthorizedError("invalid username/password")

    async def register(
        self,
        *,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        email: str,
        is_admin: bool = False,
    ) -> dict[str, Any]:
        row = await self.db.fetchrow(
            f"""
            insert into users (username, password, first_name, last_name, email, is_admin)
            values ($1, $2, $3, $4, $5, $6)
            on conflict (username) do nothing
            returning {USER_COLUMNS}
            """,
            username,
            self._hash_password(password),
            first_name,
            last_name,
            email,
            is_admin,
        )
        if row is None:
            logger.warning("user register conflict username=%s", username)
            raise RepositoryConflictError(f"duplicate username: {username}")
        logger.info("user registered username=%s is_admin=%s", username, is_admin)
        return row

    async def find_all(self) -> list[dict[str, Any]]:
        return await self.db.fetch(
            f"""
            select {USER_COLUMNS}
            from users
            order by username
            """
        )

    async def get(self, username: str) -> dict[str, Any]:
        row = await self.db.fetchrow(
            """
            select
              u.username,
              u.first_name as "firstName",
              u.last_name as "lastName",
              u.email,
              u.is_admin as "isAdmin",
              coalesce(array_agg(a.job_id order by a.job_id) filter (where a.job_id is not null), '{}') as jobs
            from users u
            left join applications a on a.username = u.username
            where u.username = $1
            group by u.username
            """,
            username,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no user: {username}")
        row["jobs"] = list(row.get("jobs") or [])
        return row

    async def update(self, username: str, data: dict[str, Any]) -> dict[str, Any]:
        if USER_IMMUTABLE_FIELDS.intersection(data):
            raise RepositoryValidationError("cannot update: username")

        payload = dict(data)
        if "password" in payload:
            payload["password"] = self._hash_password(payload["password"])

        set_sql, values = sql_for_partial_update(payload, USER_FIELD_MAP)
        username_token = f"${len(values) + 1}"
        row = await self.db.fetchrow(
            f"""
            update users
            set {set_sql}
            where username = {username_token}
            returning {USER_COLUMNS}
            """,
            *values,
            username,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no user: {username}")
        logger.info("user updated username=%s fields=%s", username, sorted(data))
        return row

    async def remove(self, username: str) -> None:
        row = await self.db.fetchrow(
            """
            delete from users
            where username = $1
            returning username
            """,
            username,
        )
        if row is None:
            raise RepositoryNotFoundError(f"no user: {username}")
        logger.info("user removed username=%s", username)

    async def apply_to_job(self, username: str, job_id: int) -> None:
        try:
            row = await self.db.fetchrow(
                """
                insert into applications (username, job_id)
                values ($1, $2)
                on conflict (username, job_id) do nothing
                returning job_id
                """,
                username,
                job_id,
            )
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError(f"no user or job: {username}, {job_id}") from exc
        if row is None:
            raise RepositoryConflictError(f"already applied: {username} -> {job_id}")
        logger.info("application recorded username=%s job_id=%s", username, job_id)

    def _hash_password(self, plain_password: str) -> str:
        password = (plain_password or "").encode("utf-8")
        if not password:
            raise RepositoryValidationError("password is empty")
        return bcrypt.hashpw(password, bcrypt.gensalt(rounds=self.bcrypt_work_factor)).decode("utf-8")

    @staticmethod
    def _verify_password(plain_password: str, password_hash: str | None) -> bool:
        password = (plain_password or "").encode("utf-8")
        hashed = (password_hash or "").encode("utf-8")
        if not password or not hashed:
            return False
        try:
            return bcrypt.checkpw(password, hashed)
        except ValueError:
            return False


@lru_cache
def get_user_repository() -> UserRepository:
    settings = get_settings()
    return UserRepository(get_database(), bcrypt_work_factor=settings.bcrypt_work_factor)
