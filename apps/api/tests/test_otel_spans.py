from __future__ import annotations

import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("OTEL_ENABLED", "true")

from prospector.core.auth import AuthUser, get_current_user
from prospector.core.config import get_settings
from prospector.core.database import Base, get_db
from prospector.main import app
from prospector.otel import setup_inmemory_otel


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
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def span_exporter() -> InMemorySpanExporter:
    exporter = setup_inmemory_otel("prospector-api")
    exporter.clear()
    return exporter


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: AuthUser(sub="user-1", roles=["admin"])
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_request_span_contains_correlation_id(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.get("/health", headers={"X-Correlation-Id": "otel-corr-1"})
    assert response.status_code == 200

    spans = span_exporter.get_finished_spans()
    assert spans
    assert any(span.attributes.get("correlation_id") == "otel-corr-1" for span in spans)


def test_import_span_carries_caller_and_count(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.post(
        "/api/prospects/import",
        json=[
            {"tenantId": "tenant-a", "institutionName": "Example University", "domain": "a.edu", "product": "verity"},
            {"tenantId": "tenant-a", "institutionName": "Sample College", "domain": "b.edu", "product": "lumina"},
        ],
        headers={"X-Correlation-Id": "otel-import-1"},
    )
    assert response.status_code == 200

    import_spans = [span for span in span_exporter.get_finished_spans() if span.name == "prospects.import"]
    assert import_spans
    assert any(
        span.attributes.get("caller_id") == "user-1"
        and span.attributes.get("processed_count") == 2
        and span.attributes.get("correlation_id") == "otel-import-1"
        for span in import_spans
    )


def test_scoring_span_is_recorded(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.post("/api/scoring/recalculate")
    assert response.status_code == 200

    scoring_spans = [span for span in span_exporter.get_finished_spans() if span.name == "scoring.recalculate"]
    assert scoring_spans
    assert scoring_spans[-1].attributes.get("processed_count") == 0
