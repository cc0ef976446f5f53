# barberbook/db.py

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from barberbook.config import get_settings


def build_engine(url: str, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        # required for SQLite + FastAPI threadpool
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, echo=get_settings().SQL_ECHO, **kwargs)


engine = build_engine(get_settings().DATABASE_URL)


def configure_engine(url: str, **kwargs) -> Engine:
    """Point every session (request and background) at a different database."""
    global engine
    engine = build_engine(url, **kwargs)
    return engine


def init_db() -> None:
    import barberbook.models  # noqa: F401  registers tables

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work that runs outside a request, e.g. background jobs."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
