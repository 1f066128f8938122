"""
Pytest fixtures for the lab algorithm builder tests.

Uses an in-memory SQLite DB for speed and isolation.
StaticPool keeps a single connection so the :memory: database (and tables) persist.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.database import Base, get_db
from backend.main import app
from backend.models.builder import CounterNodeIds
from backend.routes.builder import get_registry
from backend.services.builder_service import BuilderSession, SessionRegistry
from shared.schemas import GlobalParameter, Template

TEST_DB = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory DB and tables per test."""
    test_engine = create_engine(
        TEST_DB,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # single connection so :memory: DB and tables persist
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient with test DB and a fresh session registry."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    registry = SessionRegistry(id_scheme="counter")

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def cbc_template() -> Template:
    """Template with two parameters and one action of each kind."""
    return Template.model_validate(
        {
            "name": "Complete blood count",
            "code": "cbc",
            "parameters": [
                {"name": "hemoglobin", "subParameters": [{"name": "value"}], "states": ["low", "high"]},
                {"name": "platelets"},
            ],
            "actions": [
                {"name": "RERUN_TEST", "type": "process"},
                {"name": "VALIDATE", "type": "result"},
            ],
        }
    )


@pytest.fixture
def global_parameters() -> list[GlobalParameter]:
    return [
        GlobalParameter(name="glucose", label="Glucose"),
        GlobalParameter(name="age", label="Patient age", type="number"),
    ]


@pytest.fixture
def session(cbc_template, global_parameters) -> BuilderSession:
    """Builder session with deterministic ids (node-1, node-2, ...)."""
    return BuilderSession([cbc_template], global_parameters, ids=CounterNodeIds())
