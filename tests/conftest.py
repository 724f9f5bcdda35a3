from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from resplan.core.config import get_settings
from resplan.db.base import Base
from resplan.db.dependencies import get_db_session
import resplan.models.entities  # noqa: F401
from resplan.main import create_app
from resplan.models.entities import (
    Evaluation,
    EvaluationScore,
    MonthlyPlanEntry,
    Person,
    Project,
    ProjectAssignment,
    ProjectRelease,
    Worklog,
)
from resplan.repositories.llm_repository import LLMRepository, get_llm_repository

TEST_TABLES = [
    Person.__table__,
    Project.__table__,
    ProjectAssignment.__table__,
    MonthlyPlanEntry.__table__,
    ProjectRelease.__table__,
    Worklog.__table__,
    Evaluation.__table__,
    EvaluationScore.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def llm_client() -> MagicMock:
    """Stand-in for the OpenAI client; tests set ``chat.completions.create``."""

    return MagicMock()


@pytest.fixture()
def client(db_session: Session, llm_client: MagicMock) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    llm_repository = LLMRepository(get_settings())
    llm_repository._client = llm_client

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_llm_repository] = lambda: llm_repository
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
