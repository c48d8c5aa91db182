from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Position(BaseModel):
    """Client-assigned board coordinates. Not interpreted by the server."""

    x: float
    y: float


class TaskIn(CamelModel):
    # text and due_date are checked by the store, so a missing text or an
    # unparseable date don't fail schema validation here.
    text: Optional[str] = None
    due_date: Optional[Any] = None
    position: Optional[Position] = None


class TaskUpdate(CamelModel):
    text: Optional[str] = None
    completed: Optional[bool] = None
    due_date: Optional[Any] = None
    position: Optional[Position] = None


class Task(CamelModel):
    id: str
    text: str
    completed: bool = False
    due_date: Optional[datetime] = None
    position: Optional[Position] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("due_date", "created_at", "updated_at", when_used="json")
    def _iso_utc(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.isoformat() + "Z"
        return value.isoformat().replace("+00:00", "Z")


class Message(BaseModel):
    message: str


class Health(CamelModel):
    ok: bool
    backend_connected: bool
    time: str
