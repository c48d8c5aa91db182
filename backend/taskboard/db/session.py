import logging
from pathlib import Path

from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, Session, create_engine, text

logger = logging.getLogger(__name__)


def make_engine(database_url: str, connect_timeout: float = 5.0) -> Engine:
    """
    Build an engine whose connection attempts give up after ``connect_timeout``
    seconds. Creating the engine does not connect.
    """
    url = make_url(database_url)
    backend = url.get_backend_name()
    connect_args: dict = {}
    if backend == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": connect_timeout}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    elif backend in ("postgresql", "mysql", "mariadb"):
        connect_args = {"connect_timeout": max(1, int(connect_timeout))}
    return create_engine(url, echo=False, pool_pre_ping=True, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def ping(engine: Engine) -> None:
    """Create missing tables and run a trivial query. Raises on failure."""
    init_db(engine)
    with Session(engine) as session:
        session.execute(text("SELECT 1"))
