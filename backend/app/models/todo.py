from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models import BaseDBModel


class TodoStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TodoSortField(str, Enum):
    CREATED_AT = "created_at"
    DUE_DATE = "due_date"
    NAME = "name"
    STATUS = "status"


class TodoBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=280)
    description: str = Field(..., min_length=1)
    due_date: datetime
    status: TodoStatus = TodoStatus.NOT_STARTED
    team_id: Optional[UUID] = None


class TodoCreate(TodoBase):
    pass


class TodoUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: Optional[TodoStatus] = None
    team_id: Optional[UUID] = None


class Todo(TodoBase, BaseDBModel):
    user_id: UUID
    updated_at: Optional[datetime] = None
