"""Authorization guards evaluated against the caller's principal.

Each guard takes the (possibly absent) principal and the call context and
returns ``None`` when it passes or the denial kind when it fails. Guards are
composed per route as an ordered tuple and evaluated with :func:`evaluate`,
which stops at the first failure.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum


class Denial(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(slots=True, frozen=True)
class Principal:
    subject: str
    is_admin: bool = False


@dataclass(slots=True, frozen=True)
class CallContext:
    target_subject: str | None = None


@dataclass(slots=True, frozen=True)
class AuthDecision:
    denial: Denial | None = None
    guard: str | None = None

    @property
    def allowed(self) -> bool:
        return self.denial is None


Guard = Callable[[Principal | None, CallContext], Denial | None]

ALLOWED = AuthDecision()


def require_authenticated(principal: Principal | None, context: CallContext) -> Denial | None:
    if principal is None:
        return Denial.UNAUTHENTICATED
    return None


def require_admin(principal: Principal | None, context: CallContext) -> Denial | None:
    if principal is None or not principal.is_admin:
        return Denial.FORBIDDEN
    return None


def require_admin_or_self(principal: Principal | None, context: CallContext) -> Denial | None:
    if principal is None:
        return Denial.FORBIDDEN
    if principal.is_admin:
        return None
    if context.target_subject is not None and principal.subject == context.target_subject:
        return None
    return Denial.FORBIDDEN


def evaluate(guards: Sequence[Guard], principal: Principal | None, context: CallContext) -> AuthDecision:
    for guard in guards:
        denial = guard(principal, context)
        if denial is not None:
            return AuthDecision(denial=denial, guard=guard.__name__)
    return ALLOWED


AUTHENTICATED: tuple[Guard, ...] = (require_authenticated,)
ADMIN_ONLY: tuple[Guard, ...] = (require_authenticated, require_admin)
ADMIN_OR_SELF: tuple[Guard, ...] = (require_authenticated, require_admin_or_self)
