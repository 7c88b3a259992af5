from __future__ import annotations

import pytest

from jobly.services.companies import COMPANY_FILTERS
from jobly.services.jobs import JOB_FILTERS
from jobly.services.repository import RepositoryValidationError
from jobly.services.sql import (
    PredicateKind,
    PredicateSpec,
    quote_identifier,
    sql_for_filters,
    sql_for_partial_update,
)


def test_partial_update_translates_mapped_fields_and_numbers_placeholders() -> None:
    set_sql, values = sql_for_partial_update(
        {"numEmployees": 5, "name": "X"},
        {"numEmployees": "num_employees"},
    )

    assert set_sql == '"num_employees"=$1, "name"=$2'
    assert values == [5, "X"]


def test_partial_update_keeps_payload_order_and_nulls() -> None:
    set_sql, values = sql_for_partial_update(
        {"logoUrl": None, "description": "d", "title": "t"},
        {"logoUrl": "logo_url"},
    )

    assert set_sql == '"logo_url"=$1, "description"=$2, "title"=$3'
    assert values == [None, "d", "t"]
    assert set_sql.count("$") == len(values)


def test_partial_update_rejects_empty_payload() -> None:
    with pytest.raises(RepositoryValidationError, match="no data"):
        sql_for_partial_update({}, {"numEmployees": "num_employees"})


def test_partial_update_quotes_column_names() -> None:
    set_sql, values = sql_for_partial_update({'order"; drop table jobs; --': 1}, {})

    assert set_sql == '"order""; drop table jobs; --"=$1'
    assert values == [1]
    assert quote_identifier("select") == '"select"'


def test_filters_without_criteria_yield_empty_fragment() -> None:
    assert sql_for_filters({}, COMPANY_FILTERS) == ("", [])
    assert sql_for_filters({"name": None, "min_employees": None}, COMPANY_FILTERS) == ("", [])


def test_filters_min_employees_only() -> None:
    where_sql, values = sql_for_filters({"min_employees": 3}, COMPANY_FILTERS)

    assert where_sql == "WHERE num_employees >= $1"
    assert values == [3]


def test_filters_min_and_max_employees() -> None:
    where_sql, values = sql_for_filters({"min_employees": 3, "max_employees": 5}, COMPANY_FILTERS)

    assert where_sql == "WHERE num_employees >= $1 AND num_employees <= $2"
    assert values == [3, 5]


def test_filters_follow_spec_order_not_caller_order() -> None:
    where_sql, values = sql_for_filters(
        {"max_employees": "10", "name": "net", "min_employees": "2"},
        COMPANY_FILTERS,
    )

    assert where_sql == "WHERE name ILIKE $1 AND num_employees >= $2 AND num_employees <= $3"
    assert values == ["%net%", 2, 10]


def test_filters_reject_min_greater_than_max() -> None:
    with pytest.raises(RepositoryValidationError, match="min_employees cannot be greater than max_employees"):
        sql_for_filters({"min_employees": 5, "max_employees": 1}, COMPANY_FILTERS)


def test_filters_reject_non_numeric_range_values() -> None:
    with pytest.raises(RepositoryValidationError, match="max_employees must be a number"):
        sql_for_filters({"max_employees": "lots"}, COMPANY_FILTERS)

    with pytest.raises(RepositoryValidationError, match="min_salary must be a number"):
        sql_for_filters({"min_salary": "abc"}, JOB_FILTERS)


@pytest.mark.parametrize("value", ["2147483648", -2147483649, 99999999999])
def test_filters_reject_values_outside_integer_column_range(value: object) -> None:
    with pytest.raises(RepositoryValidationError, match="min_employees is out of range"):
        sql_for_filters({"min_employees": value}, COMPANY_FILTERS)


def test_filters_accept_integer_column_bounds() -> None:
    _, values = sql_for_filters({"min_employees": "-2147483648", "max_employees": 2147483647}, COMPANY_FILTERS)

    assert values == [-2147483648, 2147483647]


def test_boolean_flag_never_binds_a_value() -> None:
    where_sql, values = sql_for_filters({"has_equity": True}, JOB_FILTERS)

    assert where_sql == "WHERE equity > 0"
    assert values == []


def test_boolean_flag_does_not_consume_a_placeholder_slot() -> None:
    where_sql, values = sql_for_filters(
        {"title": "eng", "has_equity": "true", "company_handle": "c1", "min_salary": "1000"},
        JOB_FILTERS,
    )

    assert where_sql == "WHERE title ILIKE $1 AND salary >= $2 AND equity > 0 AND company_handle = $3"
    assert values == ["%eng%", 1000, "c1"]


@pytest.mark.parametrize("flag", [False, "false", "0", "maybe"])
def test_falsey_boolean_flag_is_skipped(flag: object) -> None:
    assert sql_for_filters({"has_equity": flag}, JOB_FILTERS) == ("", [])


def test_filters_continue_numbering_from_start_index() -> None:
    where_sql, values = sql_for_filters({"title": "x", "min_salary": 5}, JOB_FILTERS, start_index=3)

    assert where_sql == "WHERE title ILIKE $3 AND salary >= $4"
    assert values == ["%x%", 5]


def test_filters_are_deterministic() -> None:
    criteria = {"name": "a", "min_employees": 1, "max_employees": 9}

    assert sql_for_filters(criteria, COMPANY_FILTERS) == sql_for_filters(dict(reversed(criteria.items())), COMPANY_FILTERS)


def test_flag_without_literal_falls_back_to_is_true() -> None:
    specs = (PredicateSpec("remote", "remote", PredicateKind.BOOLEAN_FLAG),)

    assert sql_for_filters({"remote": "yes"}, specs) == ("WHERE remote IS TRUE", [])
