import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ..deps import get_store
from ...schemas.tasks import Message, Task, TaskIn, TaskUpdate
from ...services.task_store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tasks", response_model=List[Task])
def list_all(store: TaskStore = Depends(get_store)):
    return store.list()


@router.get("/tasks/{task_id}", response_model=Task)
def get_one(task_id: str, store: TaskStore = Depends(get_store)):
    return store.get(task_id)


@router.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
def create(body: TaskIn, store: TaskStore = Depends(get_store)):
    logger.debug("POST /tasks body: %s", body.model_dump_json(by_alias=True))
    return store.create(body.text, due_date=body.due_date, position=body.position)


@router.put("/tasks/{task_id}", response_model=Task)
def update(task_id: str, body: TaskUpdate, store: TaskStore = Depends(get_store)):
    return store.update(task_id, body.model_dump(exclude_unset=True))


@router.delete("/tasks/{task_id}", response_model=Message)
def delete(task_id: str, store: TaskStore = Depends(get_store)):
    store.delete(task_id)
    return Message(message="Task deleted successfully")
