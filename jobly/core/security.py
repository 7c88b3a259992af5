from __future__ import annotations

import logging
import re
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import jwt
from fastapi import Depends, Header, HTTPException, Request, status

from jobly.core.auth import CallContext, Denial, Guard, Principal, evaluate
from jobly.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_BEARER_PREFIX_RE = re.compile(r"^bearer\s+", re.IGNORECASE)


def create_token(user: dict[str, Any], settings: Settings) -> str:
    payload: dict[str, Any] = {
        "username": user["username"],
        "isAdmin": bool(user.get("isAdmin", False)),
        "iat": int(time.time()),
    }
    if settings.token_expire_minutes:
        payload["exp"] = payload["iat"] + settings.token_expire_minutes * 60
    return jwt.encode(payload, settings.secret_key, algorithm=settings.token_algorithm)


def decode_token(token: str | None, settings: Settings) -> Principal | None:
    """Return the principal a token was issued for, or None.

    Missing, malformed, expired or badly signed tokens all yield None so the
    failure is reported by whichever guard needs an identity.
    """
    raw = (token or "").strip()
    if not raw:
        return None
    try:
        payload = jwt.decode(raw, settings.secret_key, algorithms=[settings.token_algorithm])
    except jwt.InvalidTokenError:
        logger.info("ignoring invalid bearer token")
        return None

    username = payload.get("username")
    if not isinstance(username, str) or not username:
        return None
    return Principal(subject=username, is_admin=payload.get("isAdmin") is True)


async def get_optional_principal(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal | None:
    if not authorization:
        return None
    return decode_token(_BEARER_PREFIX_RE.sub("", authorization.strip()), settings)


def enforce(guards: Sequence[Guard], principal: Principal | None, *, target: str | None = None) -> None:
    """Raise 401 or 403 unless ``guards`` allow ``principal`` to act on ``target``."""
    decision = evaluate(guards, principal, CallContext(target_subject=target))
    if decision.allowed:
        return
    if decision.denial is Denial.UNAUTHENTICATED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"denied by {decision.guard}")


def authorize(
    guards: Sequence[Guard],
    *,
    target_param: str | None = None,
) -> Callable[..., Awaitable[Principal | None]]:
    """Build a route dependency that runs ``guards`` against the caller.

    ``target_param`` names the path parameter holding the subject that
    admin-or-self checks compare against.
    """
    composed = tuple(guards)

    async def dependency(
        request: Request,
        principal: Principal | None = Depends(get_optional_principal),
    ) -> Principal | None:
        target = request.path_params.get(target_param) if target_param else None
        enforce(composed, principal, target=target)
        return principal

    return dependency
