#!/usr/bin/env python3
"""Emit deterministic SQL granting (or revoking) the jobly admin flag."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(*, username: str, revoke: bool = False) -> str:
    flag = "false" if revoke else "true"
    return f"""-- jobly admin bootstrap SQL
-- Run this in a privileged Postgres session against the jobly database.

update users
set is_admin = {flag}
where username = {_quote_sql(username)};
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to set the admin flag on a jobly user.")
    parser.add_argument("--username", required=True, help="users.username to update")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Clear the admin flag instead of setting it",
    )
    args = parser.parse_args()

    print(render_sql(username=args.username, revoke=args.revoke))


if __name__ == "__main__":
    main()
