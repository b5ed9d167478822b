from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.models import BaseDBModel
from app.models.todo import Todo


class WorkSessionStart(BaseModel):
    todo_id: UUID


class WorkSession(BaseDBModel):
    todo_id: UUID
    user_id: UUID
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    user_email: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.ended_at is None


class ActiveWorkSession(WorkSession):
    todo: Optional[Todo] = None


class ContributorStats(BaseModel):
    user_id: UUID
    user_email: str
    minutes: int = 0
    sessions: int = 0
    share: float = 0.0


class WorkSessionSummary(BaseModel):
    todo_id: UUID
    total_minutes: int = 0
    session_count: int = 0
    active_session_count: int = 0
    contributors: List[ContributorStats] = []
