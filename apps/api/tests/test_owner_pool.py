from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from prospector.core.database import Base
from prospector.routing.models import OwnerPoolEntry
from prospector.routing.pool import OwnerPoolResolver, is_eligible


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


@pytest.fixture()
def pool_entries(db_session: Session) -> None:
    db_session.add_all(
        [
            OwnerPoolEntry(owner_id="u-admin", tenant_roles={"tenant-a": "admin"}, regions=None),
            OwnerPoolEntry(owner_id="u-east", tenant_roles={"tenant-a": "sdr"}, regions=["east"]),
            OwnerPoolEntry(owner_id="u-global", tenant_roles={"tenant-a": "sdr"}, regions=["ALL"]),
            OwnerPoolEntry(owner_id="u-empty", tenant_roles={"tenant-a": "sdr"}, regions=[]),
            OwnerPoolEntry(owner_id="u-viewer", tenant_roles={"tenant-a": "viewer"}, regions=None),
            OwnerPoolEntry(owner_id="u-other", tenant_roles={"tenant-b": "sdr"}, regions=None),
        ]
    )
    db_session.commit()


def test_pool_filters_by_tenant_role_and_region(db_session: Session, pool_entries: None) -> None:
    resolver = OwnerPoolResolver()

    east = [entry.owner_id for entry in resolver.resolve_pool(db_session, "tenant-a", "east")]
    west = [entry.owner_id for entry in resolver.resolve_pool(db_session, "tenant-a", "west")]
    tenant_b = [entry.owner_id for entry in resolver.resolve_pool(db_session, "tenant-b", None)]

    assert east == ["u-admin", "u-east", "u-global"]
    assert west == ["u-admin", "u-global"]
    assert tenant_b == ["u-other"]


def test_pool_without_region_only_keeps_unrestricted_owners(db_session: Session, pool_entries: None) -> None:
    owners = [entry.owner_id for entry in OwnerPoolResolver().resolve_pool(db_session, "tenant-a", None)]

    assert owners == ["u-admin", "u-global"]


def test_pool_is_empty_for_unknown_tenant(db_session: Session, pool_entries: None) -> None:
    assert OwnerPoolResolver().resolve_pool(db_session, "tenant-z", "east") == []


def test_owner_label_falls_back_to_email_then_id() -> None:
    assert OwnerPoolEntry(owner_id="u-1", display_name="Dana", email="d@x.edu").label == "Dana"
    assert OwnerPoolEntry(owner_id="u-1", display_name=None, email="d@x.edu").label == "d@x.edu"
    assert OwnerPoolEntry(owner_id="u-1", display_name=None, email=None).label == "u-1"


def test_is_eligible_ignores_missing_roles() -> None:
    assert not is_eligible(OwnerPoolEntry(owner_id="u-1", tenant_roles={}, regions=None), "tenant-a", None)


def test_owner_provisioned_with_empty_regions_is_never_eligible() -> None:
    entry = OwnerPoolEntry(owner_id="u-1", tenant_roles={"tenant-a": "sdr"}, regions=[])

    assert not is_eligible(entry, "tenant-a", "east")
    assert not is_eligible(entry, "tenant-a", None)
    assert is_eligible(OwnerPoolEntry(owner_id="u-2", tenant_roles={"tenant-a": "sdr"}, regions=None), "tenant-a", "east")
