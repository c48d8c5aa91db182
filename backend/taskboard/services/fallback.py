import itertools
import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from ..schemas.tasks import Task


def task_sort_key(task: Task):
    """Incomplete first, then by due date (none last), then creation time."""
    return (
        task.completed,
        task.due_date is None,
        task.due_date or task.created_at,
        task.created_at,
    )


@dataclass
class MemoryState:
    tasks: Dict[str, Task] = field(default_factory=dict)
    counter: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    def next_id(self) -> str:
        return f"{int(time.time() * 1000)}-{next(self.counter)}"


class MemoryTaskBackend:
    """
    Volatile backend used while the durable store is unreachable.

    Everything lives in the injected ``MemoryState`` and is lost with it.
    Tasks are copied on the way in and out.
    """

    def __init__(self, state: Optional[MemoryState] = None):
        self.state = state if state is not None else MemoryState()

    def create(self, fields: dict) -> Task:
        task = Task(id=self.state.next_id(), **fields)
        self.state.tasks[task.id] = task
        return task.model_copy(deep=True)

    def list(self) -> List[Task]:
        ordered = sorted(self.state.tasks.values(), key=task_sort_key)
        return [t.model_copy(deep=True) for t in ordered]

    def get(self, task_id: str) -> Optional[Task]:
        task = self.state.tasks.get(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def update(self, task_id: str, changes: dict) -> Optional[Task]:
        task = self.state.tasks.get(task_id)
        if task is None:
            return None
        updated = Task.model_validate({**task.model_dump(), **changes})
        self.state.tasks[task_id] = updated
        return updated.model_copy(deep=True)

    def delete(self, task_id: str) -> bool:
        return self.state.tasks.pop(task_id, None) is not None
