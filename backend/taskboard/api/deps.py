from fastapi import Request

from ..services.task_store import TaskStore


def get_store(request: Request) -> TaskStore:
    return request.app.state.store
