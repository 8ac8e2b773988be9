import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

import config

_is_sqlite = config.DATABASE_URL.startswith("sqlite")

connect_args = {}
if _is_sqlite:
    # Sessions are handed out per request from FastAPI's thread pool
    connect_args = {"check_same_thread": False, "timeout": config.DB_BUSY_TIMEOUT}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a session for one request; roll back anything left uncommitted."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create tables and the upload directory. Safe to call repeatedly."""
    # Register every model on Base.metadata before create_all
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)


def shutdown_db() -> None:
    engine.dispose()
