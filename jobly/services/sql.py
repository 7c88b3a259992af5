"""Parameterized SQL fragment builders.

Both builders return ``(fragment, values)``: the fragment only ever holds
quoted column names and ``$n`` placeholders, and ``values`` lines up with the
placeholders in order. Bound values are never spliced into the text.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from jobly.services.repository import RepositoryValidationError

_TRUE_FLAGS = {"1", "true", "yes", "on"}
_FALSE_FLAGS = {"0", "false", "no", "off"}

# Range of a Postgres integer column.
INT4_MIN = -(2**31)
INT4_MAX = 2**31 - 1


def quote_identifier(name: str) -> str:
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def sql_for_partial_update(
    data: Mapping[str, Any],
    field_map: Mapping[str, str],
) -> tuple[str, list[Any]]:
    """Build the ``SET`` body of an update from a partial payload.

    ``{"numEmployees": 5, "name": "X"}`` with ``{"numEmployees": "num_employees"}``
    becomes ``'"num_employees"=$1, "name"=$2'`` and ``[5, "X"]``. Keys missing
    from ``field_map`` are used as column names unchanged. The caller binds
    its identity predicate at ``$len(values) + 1``.
    """
    if not data:
        raise RepositoryValidationError("no data")

    columns: list[str] = []
    values: list[Any] = []
    for position, (key, value) in enumerate(data.items(), start=1):
        column = field_map.get(key, key)
        columns.append(f"{quote_identifier(column)}=${position}")
        values.append(value)
    return ", ".join(columns), values


class PredicateKind(str, Enum):
    EQUALS = "equals"
    SUBSTRING = "substring"
    NUMERIC_MIN = "numeric_min"
    NUMERIC_MAX = "numeric_max"
    BOOLEAN_FLAG = "boolean_flag"


@dataclass(slots=True, frozen=True)
class PredicateSpec:
    key: str
    column: str
    kind: PredicateKind
    # BOOLEAN_FLAG only: the fixed predicate emitted when the flag is set.
    literal: str | None = None
    numeric_type: Callable[[Any], Any] = int


def sql_for_filters(
    criteria: Mapping[str, Any],
    specs: Sequence[PredicateSpec],
    *,
    start_index: int = 1,
) -> tuple[str, list[Any]]:
    """Compose a ``WHERE ... AND ...`` fragment from optional criteria.

    Predicates are emitted in ``specs`` order. Criteria that are absent or
    ``None`` contribute nothing; boolean flags contribute a literal predicate
    and no placeholder. Returns ``("", [])`` when nothing applies.
    """
    normalized = _normalize_criteria(criteria, specs)
    _validate_ranges(normalized, specs)

    conditions: list[str] = []
    values: list[Any] = []

    def bind(value: Any) -> str:
        values.append(value)
        return f"${start_index + len(values) - 1}"

    for spec in specs:
        value = normalized.get(spec.key)
        if value is None:
            continue
        if spec.kind is PredicateKind.EQUALS:
            conditions.append(f"{spec.column} = {bind(value)}")
        elif spec.kind is PredicateKind.SUBSTRING:
            conditions.append(f"{spec.column} ILIKE {bind(f'%{value}%')}")
        elif spec.kind is PredicateKind.NUMERIC_MIN:
            conditions.append(f"{spec.column} >= {bind(value)}")
        elif spec.kind is PredicateKind.NUMERIC_MAX:
            conditions.append(f"{spec.column} <= {bind(value)}")
        elif spec.kind is PredicateKind.BOOLEAN_FLAG:
            if value:
                conditions.append(spec.literal or f"{spec.column} IS TRUE")

    if not conditions:
        return "", []
    return "WHERE " + " AND ".join(conditions), values


def _normalize_criteria(criteria: Mapping[str, Any], specs: Sequence[PredicateSpec]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for spec in specs:
        raw = criteria.get(spec.key)
        if raw is None:
            continue
        if spec.kind in (PredicateKind.NUMERIC_MIN, PredicateKind.NUMERIC_MAX):
            normalized[spec.key] = _coerce_number(raw, key=spec.key, numeric_type=spec.numeric_type)
        elif spec.kind is PredicateKind.BOOLEAN_FLAG:
            normalized[spec.key] = _coerce_flag(raw)
        else:
            normalized[spec.key] = raw
    return normalized


def _validate_ranges(normalized: Mapping[str, Any], specs: Sequence[PredicateSpec]) -> None:
    minimums = {spec.column: spec.key for spec in specs if spec.kind is PredicateKind.NUMERIC_MIN}
    for spec in specs:
        if spec.kind is not PredicateKind.NUMERIC_MAX:
            continue
        min_key = minimums.get(spec.column)
        if min_key is None:
            continue
        low = normalized.get(min_key)
        high = normalized.get(spec.key)
        if low is not None and high is not None and low > high:
            raise RepositoryValidationError(f"{min_key} cannot be greater than {spec.key}")


def _coerce_number(value: Any, *, key: str, numeric_type: Callable[[Any], Any]) -> Any:
    if isinstance(value, bool):
        raise RepositoryValidationError(f"{key} must be a number")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = numeric_type(value)
    except (TypeError, ValueError) as exc:
        raise RepositoryValidationError(f"{key} must be a number") from exc
    if isinstance(value, float) and number != value:
        raise RepositoryValidationError(f"{key} must be a whole number")
    if isinstance(number, int) and not INT4_MIN <= number <= INT4_MAX:
        raise RepositoryValidationError(f"{key} is out of range")
    return number


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_FLAGS:
            return True
        if normalized in _FALSE_FLAGS:
            return False
    return False
