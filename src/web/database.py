"""
Database session management for Newsdesk.

One engine per process, built from ``settings.database_url``. SQLite
connections get foreign-key enforcement (article deletes cascade to saved
and read references) and WAL journaling.
"""
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.web.config import settings


DATABASE_URL = settings.database_url

SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON",
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
)


def build_engine(url: str) -> Engine:
    """
    Create an engine for url.

    SQLite engines share one connection across threads (StaticPool); the
    parent directory of a file database is created if missing.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@event.listens_for(Engine, "connect")
def apply_sqlite_pragmas(dbapi_conn, connection_record):
    """Run SQLITE_PRAGMAS on every new sqlite3 connection."""
    if type(dbapi_conn).__module__.split(".")[0] != "sqlite3":
        return

    cursor = dbapi_conn.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create missing tables."""
    from src.web.models import Base

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session, closed when the request finishes.

    Example:
        @app.get("/api/articles")
        async def list_articles(db: Session = Depends(get_db)):
            ...
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_test_db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory SQLite database with every table created.

    The tables are dropped again once the consumer is done.

    Example:
        @pytest.fixture
        def db():
            yield from get_test_db()
    """
    from src.web.models import Base

    test_engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=test_engine)

    session = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()
