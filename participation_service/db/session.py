# participation_service/db/session.py
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from participation_service.core.config import settings


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    SQLite connections are handed between request threads by the pool, and
    writers wait on the database lock for at most DB_LOCK_TIMEOUT_SECONDS.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.DB_LOCK_TIMEOUT_SECONDS,
            },
        )
    return create_engine(database_url, pool_pre_ping=True)


# The engine is the entry point to the database. It's configured with the
# database URL and handles the connection pooling.
engine = create_db_engine(settings.DATABASE_URL)

# SessionLocal is a factory for creating new Session objects.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def begin_write_transaction(db: Session) -> None:
    """
    Open the current transaction as a writer.

    PostgreSQL: bound the wait on row locks taken later with FOR UPDATE.
    SQLite has no row locks, so take the database write lock up front with
    BEGIN IMMEDIATE; the capacity read and the insert then run under it.
    """
    connection = db.connection()
    dialect = connection.dialect.name

    if dialect == "postgresql":
        timeout_ms = int(settings.DB_LOCK_TIMEOUT_SECONDS * 1000)
        db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
    elif dialect == "sqlite":
        dbapi_connection = connection.connection.dbapi_connection
        if not dbapi_connection.in_transaction:
            connection.exec_driver_sql("BEGIN IMMEDIATE")


# This is our dependency function.
# When an endpoint depends on this, FastAPI will execute this function
# before running the endpoint's code.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        # Always closed, even if there was an error; an open transaction
        # is rolled back here.
        db.close()
