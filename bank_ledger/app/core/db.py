from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import get_settings

_PSYCOPG_SCHEMES = ("postgresql://", "postgres://")


def normalize_database_url(database_url: str) -> str:
    """Point bare PostgreSQL URLs at psycopg 3, the driver the ``postgres`` extra installs."""
    for scheme in _PSYCOPG_SCHEMES:
        if database_url.startswith(scheme):
            return "postgresql+psycopg://" + database_url[len(scheme):]
    return database_url


def _serialize_sqlite_transactions(engine: Engine) -> None:
    # pysqlite only emits BEGIN before DML, so a leading SELECT would run
    # outside the transaction; take the write lock at BEGIN instead.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(database_url: str, busy_timeout: float | None = None) -> Engine:
    database_url = normalize_database_url(database_url)
    connect_args: dict[str, Any] = {}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        if busy_timeout is None:
            busy_timeout = get_settings().sqlite_busy_timeout
        connect_args = {"check_same_thread": False, "timeout": busy_timeout}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if is_sqlite:
        _serialize_sqlite_transactions(engine)
    return engine


settings = get_settings()
engine = create_engine_for_url(settings.database_url)


def init_db() -> None:
    # create_all only emits CREATE TABLE for tables that are missing
    SQLModel.metadata.create_all(engine)


def new_session() -> Session:
    return Session(engine, expire_on_commit=False)


def get_session() -> Generator[Session, None, None]:
    with new_session() as session:
        yield session


def set_engine(new_engine: Engine) -> None:
    global engine
    engine = new_engine
