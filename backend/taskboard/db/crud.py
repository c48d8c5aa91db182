import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlmodel import Session, col, select

from ..core.errors import StorageError
from ..schemas.tasks import Task
from .models import TaskRecord
from .session import ping

logger = logging.getLogger(__name__)


def _to_task(record: TaskRecord) -> Task:
    return Task.model_validate(record, from_attributes=True)


def create_task(session: Session, fields: dict) -> Task:
    record = TaskRecord(**fields)
    session.add(record)
    session.commit()
    session.refresh(record)
    return _to_task(record)


def list_tasks(session: Session) -> List[Task]:
    stmt = select(TaskRecord).order_by(
        col(TaskRecord.completed),
        col(TaskRecord.due_date).is_(None),
        col(TaskRecord.due_date),
        col(TaskRecord.created_at),
    )
    return [_to_task(r) for r in session.exec(stmt).all()]


def get_task(session: Session, task_id: str) -> Optional[Task]:
    record = session.get(TaskRecord, task_id)
    return _to_task(record) if record is not None else None


def update_task(session: Session, task_id: str, changes: dict) -> Optional[Task]:
    record = session.get(TaskRecord, task_id)
    if record is None:
        return None
    for name, value in changes.items():
        setattr(record, name, value)
    session.add(record)
    session.commit()
    session.refresh(record)
    return _to_task(record)


def delete_task(session: Session, task_id: str) -> bool:
    record = session.get(TaskRecord, task_id)
    if record is None:
        return False
    session.delete(record)
    session.commit()
    return True


class SqlTaskBackend:
    """Durable task backend. Each call runs in its own session."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except DBAPIError as e:
            # Only a dropped connection counts as losing the store; lock
            # timeouts and constraint errors leave it in place.
            if e.connection_invalidated:
                logger.error("Durable store connection lost: %s", e.orig)
                raise StorageError(str(e.orig), connection_lost=True) from e
            logger.exception("Durable store operation failed")
            raise StorageError(str(e.orig)) from e
        except SQLAlchemyError as e:
            logger.exception("Durable store operation failed")
            raise StorageError(str(e)) from e

    def ping(self) -> None:
        try:
            ping(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(str(e), connection_lost=True) from e

    def create(self, fields: dict) -> Task:
        with self._session() as session:
            return create_task(session, fields)

    def list(self) -> List[Task]:
        with self._session() as session:
            return list_tasks(session)

    def get(self, task_id: str) -> Optional[Task]:
        with self._session() as session:
            return get_task(session, task_id)

    def update(self, task_id: str, changes: dict) -> Optional[Task]:
        with self._session() as session:
            return update_task(session, task_id, changes)

    def delete(self, task_id: str) -> bool:
        with self._session() as session:
            return delete_task(session, task_id)

    def dispose(self) -> None:
        self.engine.dispose()
