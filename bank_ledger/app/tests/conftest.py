from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from ..core import db
from ..core.db import create_engine_for_url, get_session, set_engine
from ..main import app
from ..services import LedgerService


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    test_db = tmp_path / "test.db"
    engine = create_engine_for_url(f"sqlite:///{test_db}", busy_timeout=30)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def service(session: Session) -> LedgerService:
    return LedgerService(session)


@pytest.fixture
def client(engine: Engine) -> Iterator[TestClient]:
    original_engine = db.engine
    set_engine(engine)

    def _get_session_override():
        with Session(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)
