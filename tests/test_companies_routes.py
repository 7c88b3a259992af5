from __future__ import annotations

import pytest
from asyncpg import exceptions as pg_exc  # type: ignore[import-untyped]
from fastapi.testclient import TestClient

from jobly.main import app
from jobly.services.companies import CompanyRepository, get_company_repository

NEW_COMPANY = {
    "handle": "new",
    "name": "New",
    "logoUrl": "http://new.img",
    "description": "DescNew",
    "numEmployees": 10,
}


@pytest.fixture
def company_db(recording_db, api_client: TestClient):
    app.dependency_overrides[get_company_repository] = lambda: CompanyRepository(recording_db)
    return recording_db


def test_create_company_allowed_for_admin(api_client: TestClient, company_db, bearer) -> None:
    company_db.queue(NEW_COMPANY)

    response = api_client.post("/companies", json=NEW_COMPANY, headers=bearer("admin", is_admin=True))

    assert response.status_code == 201
    assert response.json() == NEW_COMPANY
    _, args = company_db.calls[0]
    assert args == ("new", "New", "DescNew", 10, "http://new.img")


def test_create_company_forbidden_for_users(api_client: TestClient, company_db, bearer) -> None:
    response = api_client.post("/companies", json=NEW_COMPANY, headers=bearer("u1"))

    assert response.status_code == 403
    assert company_db.calls == []


def test_create_company_unauthorized_for_anon(api_client: TestClient, company_db) -> None:
    response = api_client.post("/companies", json=NEW_COMPANY)

    assert response.status_code == 401
    assert company_db.calls == []


def test_malformed_token_is_treated_as_anonymous(api_client: TestClient, company_db) -> None:
    response = api_client.post("/companies", json=NEW_COMPANY, headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401


def test_create_company_rejects_invalid_logo_url(api_client: TestClient, company_db, bearer) -> None:
    response = api_client.post(
        "/companies",
        json={**NEW_COMPANY, "logoUrl": "not-a-url"},
        headers=bearer("admin", is_admin=True),
    )

    assert response.status_code == 422


def test_create_duplicate_company_is_conflict(api_client: TestClient, company_db, bearer) -> None:
    company_db.queue(None)

    response = api_client.post("/companies", json=NEW_COMPANY, headers=bearer("admin", is_admin=True))

    assert response.status_code == 409


def test_list_companies_ok_for_anon_with_filters(api_client: TestClient, company_db) -> None:
    company_db.queue([{**NEW_COMPANY}])

    response = api_client.get("/companies", params={"name": "ne", "minEmployees": "3"})

    assert response.status_code == 200
    assert response.json() == [NEW_COMPANY]
    sql, args = company_db.calls[0]
    assert "WHERE name ILIKE $1 AND num_employees >= $2" in sql
    assert args == ("%ne%", 3)


@pytest.mark.parametrize(
    "params",
    [
        {"minEmployees": "5", "maxEmployees": "1"},
        {"minEmployees": "many"},
        {"minEmployees": "99999999999"},
    ],
)
def test_list_companies_bad_filters_are_bad_requests(api_client: TestClient, company_db, params) -> None:
    response = api_client.get("/companies", params=params)

    assert response.status_code == 400
    assert company_db.calls == []


def test_get_company_includes_jobs(api_client: TestClient, company_db) -> None:
    company_db.queue({**NEW_COMPANY, "jobs": [{"id": 1, "title": "j1", "salary": 1, "equity": "0.5"}]})

    response = api_client.get("/companies/new")

    assert response.status_code == 200
    assert response.json()["jobs"] == [{"id": 1, "title": "j1", "salary": 1, "equity": "0.5"}]


def test_get_missing_company_is_not_found(api_client: TestClient, company_db) -> None:
    response = api_client.get("/companies/nope")

    assert response.status_code == 404
    assert response.json() == {"detail": "no company: nope"}


def test_patch_company_for_admin(api_client: TestClient, company_db, bearer) -> None:
    company_db.queue({**NEW_COMPANY, "name": "Renamed"})

    response = api_client.patch(
        "/companies/new",
        json={"name": "Renamed", "logoUrl": None},
        headers=bearer("admin", is_admin=True),
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    sql, args = company_db.calls[0]
    assert 'set "name"=$1, "logo_url"=$2 where handle = $3' in sql
    assert args == ("Renamed", None, "new")


def test_patch_company_handle_is_rejected(api_client: TestClient, company_db, bearer) -> None:
    response = api_client.patch(
        "/companies/new",
        json={"handle": "other"},
        headers=bearer("admin", is_admin=True),
    )

    assert response.status_code == 422
    assert company_db.calls == []


@pytest.mark.parametrize("body", [{"name": None}, {"description": None}, {"name": "X", "description": None}])
def test_patch_company_rejects_null_for_required_columns(api_client: TestClient, company_db, bearer, body) -> None:
    response = api_client.patch("/companies/new", json=body, headers=bearer("admin", is_admin=True))

    assert response.status_code == 422
    assert company_db.calls == []


def test_patch_company_to_taken_name_is_conflict(api_client: TestClient, company_db, bearer) -> None:
    company_db.queue(pg_exc.UniqueViolationError("duplicate key value violates unique constraint"))

    response = api_client.patch("/companies/new", json={"name": "C1"}, headers=bearer("admin", is_admin=True))

    assert response.status_code == 409
    assert response.json() == {"detail": "duplicate company name: C1"}


def test_patch_company_with_empty_body_is_bad_request(api_client: TestClient, company_db, bearer) -> None:
    response = api_client.patch("/companies/new", json={}, headers=bearer("admin", is_admin=True))

    assert response.status_code == 400
    assert response.json() == {"detail": "no data"}


def test_patch_missing_company_is_not_found(api_client: TestClient, company_db, bearer) -> None:
    response = api_client.patch("/companies/nope", json={"name": "X"}, headers=bearer("admin", is_admin=True))

    assert response.status_code == 404


def test_delete_company(api_client: TestClient, company_db, bearer) -> None:
    company_db.queue({"handle": "new"})

    assert api_client.delete("/companies/new", headers=bearer("u1")).status_code == 403
    response = api_client.delete("/companies/new", headers=bearer("admin", is_admin=True))

    assert response.status_code == 200
    assert response.json() == {"deleted": "new"}
