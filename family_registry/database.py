from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from family_registry.config import settings


def build_engine(database_url: str, **engine_kwargs) -> Engine:
    """
    Create an engine for the given URL.
    SQLite needs check_same_thread off (FastAPI runs sync routes in a
    threadpool) and foreign keys switched on for every connection.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    new_engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)

    if new_engine.dialect.name == "sqlite":
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)

    return new_engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# --------------------------------------------------
# DB dependency
# --------------------------------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Commit everything done inside the block in one transaction,
    or roll all of it back if anything raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
