from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from prospector.core.auth import AuthUser, get_current_user
from prospector.core.config import get_settings
from prospector.core.database import Base, get_db
from prospector.main import app
from prospector.models.audit import AuditRecord
from prospector.prospects.models import Prospect
from prospector.routing.models import OwnerPoolEntry


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clear_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def sdr_user() -> Generator[AuthUser, None, None]:
    user = AuthUser(sub="user-1", roles=["sdr"])
    app.dependency_overrides[get_current_user] = lambda: user
    yield user
    app.dependency_overrides.pop(get_current_user, None)


def _record(domain: str = "example.edu", **overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "tenantId": "tenant-a",
        "institutionName": "Example University",
        "domain": domain,
        "product": "verity",
    }
    record.update(overrides)
    return record


def test_import_json_array(client: TestClient, db_session: Session, sdr_user: AuthUser) -> None:
    db_session.add(OwnerPoolEntry(owner_id="u-1", tenant_roles={"tenant-a": "sdr"}, display_name="Avery"))
    db_session.commit()

    response = client.post("/api/prospects/import", json=[_record("a.edu"), _record("b.edu", product="Lumina")])

    assert response.status_code == 200
    assert response.json() == {"ok": True, "count": 2}
    ids = set(db_session.scalars(select(Prospect.id)).all())
    assert ids == {"a.edu_verity", "b.edu_lumina"}


def test_import_single_object(client: TestClient, sdr_user: AuthUser) -> None:
    response = client.post("/api/prospects/import", json=_record())

    assert response.status_code == 200
    assert response.json()["count"] == 1


def test_import_csv_body(client: TestClient, db_session: Session, sdr_user: AuthUser) -> None:
    body = (
        "tenantId,institutionName,domain,product,wedges\n"
        "tenant-a,Example University,example.edu,verity,proctoring;integrity\n"
    )

    response = client.post("/api/prospects/import", content=body, headers={"Content-Type": "text/csv"})

    assert response.status_code == 200
    prospect = db_session.get(Prospect, ("tenant-a", "example.edu_verity"))
    assert prospect.wedges == ["proctoring", "integrity"]


def test_import_with_bearer_token(client: TestClient, db_session: Session) -> None:
    settings = get_settings()
    token = jwt.encode({"sub": "jwt-user", "roles": ["sdr"]}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    response = client.post(
        "/api/prospects/import",
        json=_record(),
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    [audit] = db_session.scalars(select(AuditRecord)).all()
    assert audit.by == "jwt-user"


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-token"}])
def test_import_requires_authenticated_caller(client: TestClient, db_session: Session, headers: dict[str, str]) -> None:
    response = client.post("/api/prospects/import", json=_record(), headers=headers)

    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"
    assert db_session.scalar(select(func.count()).select_from(Prospect)) == 0


def test_import_validation_error_lists_fields(client: TestClient, db_session: Session, sdr_user: AuthUser) -> None:
    response = client.post(
        "/api/prospects/import",
        json=[_record("a.edu"), _record("b.edu", product="unknown", score=150)],
        headers={"X-Correlation-Id": "corr-422"},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "prospect_import_validation_failed"
    assert body["correlation_id"] == "corr-422"
    assert {(item["record_index"], item["field"]) for item in body["details"]} == {(1, "product"), (1, "score")}
    assert db_session.scalar(select(func.count()).select_from(Prospect)) == 0


def test_import_empty_body_is_rejected(client: TestClient, sdr_user: AuthUser) -> None:
    response = client.post("/api/prospects/import", content=b"", headers={"Content-Type": "application/json"})

    assert response.status_code == 422
    assert response.json()["details"][0]["reason"] == "no data provided"


def test_import_malformed_json_is_rejected(client: TestClient, sdr_user: AuthUser) -> None:
    response = client.post("/api/prospects/import", content=b"[{", headers={"Content-Type": "application/json"})

    assert response.status_code == 422


def test_import_non_utf8_body_is_rejected(client: TestClient, db_session: Session, sdr_user: AuthUser) -> None:
    response = client.post(
        "/api/prospects/import",
        content=b"tenantId,domain\n\xff\xfe,\x80\n",
        headers={"Content-Type": "text/csv"},
    )

    assert response.status_code == 422
    assert response.json()["details"][0]["reason"] == "body must be UTF-8 text"
    assert db_session.scalar(select(func.count()).select_from(Prospect)) == 0


def test_import_over_write_limit_returns_413(
    client: TestClient,
    db_session: Session,
    sdr_user: AuthUser,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("COMMIT_MAX_WRITES", "3")
    get_settings.cache_clear()

    response = client.post("/api/prospects/import", json=[_record("a.edu"), _record("b.edu")])

    assert response.status_code == 413
    assert response.json()["details"] == {"limit": 3, "attempted": 4}
    assert db_session.scalar(select(func.count()).select_from(Prospect)) == 0


def test_read_back_prospect(client: TestClient, sdr_user: AuthUser) -> None:
    client.post("/api/prospects/import", json=_record(contacts=[{"name": "Dana", "role": "CIO"}]))

    response = client.get("/api/tenants/tenant-a/prospects/example.edu_verity")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "example.edu_verity"
    assert body["stage"] == "research"
    assert body["contacts"][0]["role"] == "CIO"
    assert body["audit"][0]["by"] == "user-1"


def test_read_back_missing_prospect_returns_404(client: TestClient, sdr_user: AuthUser) -> None:
    response = client.get("/api/tenants/tenant-a/prospects/missing.edu_verity")

    assert response.status_code == 404
    assert response.json()["code"] == "prospect_not_found"


def test_read_back_requires_authentication(client: TestClient) -> None:
    response = client.get("/api/tenants/tenant-a/prospects/example.edu_verity")

    assert response.status_code == 401
