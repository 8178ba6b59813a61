from sqlalchemy import Engine, create_engine, event, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

_engine: Engine | None = None

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # sqlite ignores ON DELETE CASCADE unless foreign keys are switched on
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def is_in_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return False
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


def init_db(database_url: str, create_tables: bool = False) -> sessionmaker[Session]:
    """Create the engine and session factory for the relational store.

    Schema migrations are owned by the surrounding system; create_tables is
    meant for tests and local setups only.

    Args:
        database_url: SQLAlchemy URL, e.g. "postgresql+psycopg://..." or "sqlite:///docsync.db".
        create_tables: Create the tables of all registered models.

    Returns:
        The session factory bound to the new engine.
    """
    # Import models so they are registered with Base.metadata
    from shared.db import models  # noqa: F401

    global _engine

    if is_in_memory_sqlite(database_url):
        from sqlalchemy.pool import StaticPool

        # one shared connection, otherwise every checkout sees its own empty database
        _engine = create_engine(database_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    elif database_url.startswith("sqlite"):
        _engine = create_engine(database_url, connect_args={"check_same_thread": False})
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        from sqlalchemy.pool import QueuePool

        _engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=10,
            max_overflow=20,
            pool_timeout=30,
            pool_recycle=3600,
            pool_pre_ping=True,
        )

    session_factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=_engine)

    if create_tables:
        Base.metadata.create_all(bind=_engine)

    return session_factory


def close_db() -> None:
    """Dispose the engine."""
    global _engine

    if _engine is not None:
        _engine.dispose()
    _engine = None
