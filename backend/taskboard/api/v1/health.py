from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..deps import get_store
from ...schemas.tasks import Health
from ...services.task_store import TaskStore

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Welcome to the Taskboard API!"


@router.get("/health", response_model=Health)
def health(store: TaskStore = Depends(get_store)):
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return Health(ok=True, backend_connected=store.durable_active, time=now)
