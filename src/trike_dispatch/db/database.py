"""Database engine initialization and connection management."""

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .schema import Base, SchemaMetadata

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"


def _configure_sqlite(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first DML statement, which lets two
    sessions both read and then deadlock when upgrading to a write lock.
    Emitting BEGIN IMMEDIATE serializes writers through the busy timeout
    instead, so conditional updates never interleave.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(url: str, busy_timeout_seconds: float = 30.0) -> Engine:
    """Create the SQLAlchemy engine for the record store."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=False, pool_pre_ping=True)

    database = parsed.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": busy_timeout_seconds},
        )
    else:
        # One shared connection, otherwise every checkout sees an empty database.
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    _configure_sqlite(engine)
    return engine


def init_database(url: str, busy_timeout_seconds: float = 30.0) -> sessionmaker[Any]:
    """Initialize database and return session factory."""
    engine = create_store_engine(url, busy_timeout_seconds)
    Base.metadata.create_all(engine)

    session_maker = sessionmaker(bind=engine, expire_on_commit=False)

    with session_maker() as session:
        schema_version = session.get(SchemaMetadata, "schema_version")
        if not schema_version:
            session.add(SchemaMetadata(key="schema_version", value=SCHEMA_VERSION))
        session.commit()

    logger.info("Record store ready (backend=%s)", engine.dialect.name)
    return session_maker
