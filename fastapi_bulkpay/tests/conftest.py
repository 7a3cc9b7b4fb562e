"""
Shared pytest fixtures: in-memory database, fake registry, API client.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bulkpay.api import deps
from bulkpay.db.session import get_db
from bulkpay.main import app
from bulkpay.models import Base
from bulkpay.services.draft_store import DraftStore
from bulkpay.services.payment_backend import SqlPaymentBackend
from bulkpay.services.registry_service import RegistryLookupError, RegistryLookupResult

DIRECTORY = {
    "256701234567": "John Doe",
    "256781234567": "Jane Smith",
    "256771234567": "Bob Wilson",
}


class FakeRegistry:
    """Async stand-in for registry_service.lookup_phone."""

    def __init__(self, directory: dict[str, str] | None = None) -> None:
        self.directory = dict(DIRECTORY if directory is None else directory)
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def __call__(self, phone_number: str) -> RegistryLookupResult:
        self.calls.append(phone_number)
        if phone_number in self.failing:
            raise RegistryLookupError("registry unavailable", retryable=True)
        registered_name = self.directory.get(phone_number)
        return RegistryLookupResult(found=registered_name is not None, registered_name=registered_name)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def backend(db_session):
    return SqlPaymentBackend(db_session)


@pytest.fixture
def fake_registry():
    return FakeRegistry()


@pytest.fixture
def draft_store(fake_registry):
    return DraftStore(lookup=fake_registry)


@pytest.fixture
def client(session_factory, draft_store):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[deps.get_draft_store] = lambda: draft_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def maker_headers():
    return {"X-Actor-Id": "maker-1", "X-Actor-Roles": "MAKER"}


@pytest.fixture
def approver_headers():
    return {"X-Actor-Id": "approver-1", "X-Actor-Roles": "APPROVER"}


@pytest.fixture
def viewer_headers():
    return {"X-Actor-Id": "viewer-1", "X-Actor-Roles": "VIEWER"}
