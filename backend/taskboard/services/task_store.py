"""
Task persistence and retrieval.

``TaskStore`` validates input and then runs each call against exactly one
backend: the durable SQL store when ``BackendState.connected`` is set,
otherwise the in-memory fallback. The choice is made once at the start of a
call and never revisited mid-call.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from dateutil import parser as dtparser
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import NotFound, StorageError, ValidationError
from ..schemas.tasks import Position, Task
from .connectivity import BackendState
from .fallback import MemoryTaskBackend

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = {
    "text": "text",
    "completed": "completed",
    "due_date": "due_date",
    "dueDate": "due_date",
    "position": "position",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_due_date(value: Any) -> Optional[datetime]:
    """
    Lenient due date parsing. Anything that can't be read as a point in time
    yields None instead of an error. Numbers are epoch milliseconds; aware
    datetimes are converted to naive UTC, naive ones are taken as UTC.
    """
    if value is None or value is False or value == "" or value == 0:
        return None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            dt = dtparser.parse(value)
        else:
            return None
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError, OSError):
        logger.debug("Ignoring unparseable due date %r", value)
        return None
    return dt


def _clean_text(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError("text required")
    return text


def _clean_position(value: Any) -> Optional[dict]:
    if value is None:
        return None
    if isinstance(value, Position):
        return value.model_dump()
    try:
        return Position.model_validate(value).model_dump()
    except PydanticValidationError as e:
        raise ValidationError("position must be an object with numeric x and y") from e


class TaskStore:
    def __init__(self, state: BackendState, fallback: Optional[MemoryTaskBackend] = None):
        self.state = state
        self.fallback = fallback if fallback is not None else MemoryTaskBackend()

    @property
    def durable_active(self) -> bool:
        return self.state.connected and self.state.durable is not None

    def _backend(self):
        if self.state.recheck_due():
            self.state.recheck()
        return self.state.durable if self.durable_active else self.fallback

    def _run(self, backend, op: str, *args):
        try:
            return getattr(backend, op)(*args)
        except StorageError as e:
            if e.connection_lost and backend is self.state.durable:
                logger.warning("Lost durable store during %s; falling back until it answers again", op)
                self.state.mark_disconnected()
            raise

    def create(self, text: Any, due_date: Any = None, position: Any = None) -> Task:
        now = utcnow()
        fields = {
            "text": _clean_text(text),
            "completed": False,
            "due_date": parse_due_date(due_date),
            "position": _clean_position(position),
            "created_at": now,
            "updated_at": now,
        }
        backend = self._backend()
        task = self._run(backend, "create", fields)
        logger.info("Created task %s", task.id)
        return task

    def list(self) -> List[Task]:
        return self._run(self._backend(), "list")

    def get(self, task_id: str) -> Task:
        task = self._run(self._backend(), "get", task_id)
        if task is None:
            raise NotFound(task_id)
        return task

    def update(self, task_id: str, fields: dict) -> Task:
        changes = self._clean_changes(fields)
        backend = self._backend()
        current = self._run(backend, "get", task_id)
        if current is None:
            raise NotFound(task_id)
        now = utcnow()
        # updatedAt must move forward even if the clock hasn't.
        if now <= current.updated_at:
            now = current.updated_at + timedelta(microseconds=1)
        changes["updated_at"] = now
        task = self._run(backend, "update", task_id, changes)
        if task is None:
            raise NotFound(task_id)
        return task

    def delete(self, task_id: str) -> None:
        if not self._run(self._backend(), "delete", task_id):
            raise NotFound(task_id)
        logger.info("Deleted task %s", task_id)

    @staticmethod
    def _clean_changes(fields: dict) -> dict:
        """Validate every supplied field up front so an update applies whole or not at all."""
        changes: dict = {}
        for key, value in fields.items():
            name = MUTABLE_FIELDS.get(key)
            if name is None:
                continue
            if name == "text":
                changes["text"] = _clean_text(value)
            elif name == "completed":
                if not isinstance(value, bool):
                    raise ValidationError("completed must be a boolean")
                changes["completed"] = value
            elif name == "due_date":
                changes["due_date"] = parse_due_date(value)
            else:
                changes["position"] = _clean_position(value)
        return changes
