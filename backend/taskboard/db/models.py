from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field


def new_task_id() -> str:
    return uuid4().hex


class TaskRecord(SQLModel, table=True):
    __tablename__ = "task"

    id: str = Field(default_factory=new_task_id, primary_key=True)
    text: str = Field(nullable=False)
    completed: bool = Field(default=False, nullable=False, index=True)
    # Timestamps are naive UTC.
    due_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=False), nullable=True, index=True)
    )
    # {"x": ..., "y": ...}, stored as given
    position: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
