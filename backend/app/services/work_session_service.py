import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import AsyncClient

from app.db.database import UNIQUE_VIOLATION, first_row, is_pg_error
from app.exceptions import AlreadyEnded, NotFound, SessionAlreadyActive
from app.models.todo import Todo
from app.models.work_session import (
    ActiveWorkSession,
    ContributorStats,
    WorkSession,
    WorkSessionSummary,
)
from app.services.directory_service import UNKNOWN_EMAIL, DirectoryService
from app.services.todo_service import TodoService

logger = logging.getLogger(__name__)


def compute_duration_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Whole minutes between two instants, floored and never negative."""
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)
    if ended_at.tzinfo is None:
        ended_at = ended_at.replace(tzinfo=timezone.utc)

    seconds = (ended_at - started_at).total_seconds()
    # a start stamped by a clock ahead of ours would otherwise go negative
    return max(0, int(seconds // 60))


def summarize_sessions(todo_id: UUID, sessions: List[WorkSession]) -> WorkSessionSummary:
    """Aggregate ended sessions into per-todo and per-user totals."""
    contributors: Dict[UUID, ContributorStats] = {}
    total_minutes = 0
    active = 0

    for session in sessions:
        if session.is_active:
            active += 1
            continue

        minutes = session.duration_minutes or 0
        total_minutes += minutes

        stats = contributors.setdefault(
            session.user_id,
            ContributorStats(
                user_id=session.user_id,
                user_email=session.user_email or UNKNOWN_EMAIL,
            ),
        )
        stats.minutes += minutes
        stats.sessions += 1

    for stats in contributors.values():
        stats.share = stats.minutes / total_minutes if total_minutes > 0 else 0.0

    return WorkSessionSummary(
        todo_id=todo_id,
        total_minutes=total_minutes,
        session_count=len(sessions),
        active_session_count=active,
        contributors=sorted(
            contributors.values(), key=lambda s: s.minutes, reverse=True
        ),
    )


class WorkSessionService:
    @staticmethod
    async def start(
        todo_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> WorkSession:
        await TodoService.require_access(todo_id, user_id, supabase_client)

        if await WorkSessionService._get_open_session(todo_id, user_id, supabase_client):
            raise SessionAlreadyActive()

        # uq_open_work_session catches a concurrent start that passed the check above
        try:
            session = (
                await supabase_client.table("work_sessions")
                .insert(
                    {
                        "todo_id": str(todo_id),
                        "user_id": str(user_id),
                        "started_at": datetime.now(timezone.utc).isoformat(),
                    },
                    returning="representation",
                )
                .execute()
            ).data[0]
        except APIError as e:
            if is_pg_error(e, UNIQUE_VIOLATION):
                raise SessionAlreadyActive()
            raise

        logger.info(f"User {user_id} started work session {session['id']} on todo {todo_id}")
        return WorkSession(**session)

    @staticmethod
    async def stop(
        session_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> WorkSession:
        row = first_row(
            await supabase_client.table("work_sessions")
            .select("*")
            .eq("id", str(session_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not row:
            raise NotFound("Work session not found or access denied")

        session = WorkSession(**row)
        if not session.is_active:
            raise AlreadyEnded()

        ended_at = datetime.now(timezone.utc)
        duration = compute_duration_minutes(session.started_at, ended_at)

        updated = first_row(
            await supabase_client.table("work_sessions")
            .update(
                {"ended_at": ended_at.isoformat(), "duration_minutes": duration},
                returning="representation",
            )
            .eq("id", str(session_id))
            .eq("user_id", str(user_id))
            .is_("ended_at", "null")
            .execute()
        )
        if not updated:
            raise AlreadyEnded()

        logger.info(f"User {user_id} stopped work session {session_id} after {duration} min")
        return WorkSession(**updated)

    @staticmethod
    async def list_for_todo(
        todo_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> List[WorkSession]:
        await TodoService.require_access(todo_id, user_id, supabase_client)

        sessions = (
            await supabase_client.table("work_sessions")
            .select("*")
            .eq("todo_id", str(todo_id))
            .order("started_at", desc=True)
            .execute()
        ).data

        emails = await asyncio.gather(
            *[
                DirectoryService.get_email(session["user_id"], supabase_client)
                for session in sessions
            ]
        )

        return [
            WorkSession(**{**session, "user_email": email})
            for session, email in zip(sessions, emails)
        ]

    @staticmethod
    async def list_active(
        user_id: UUID, supabase_client: AsyncClient
    ) -> List[ActiveWorkSession]:
        sessions = (
            await supabase_client.table("work_sessions")
            .select("*, todos(*)")
            .eq("user_id", str(user_id))
            .is_("ended_at", "null")
            .execute()
        ).data

        active = []
        for session in sessions:
            todo = session.pop("todos", None)
            active.append(
                ActiveWorkSession(**session, todo=Todo(**todo) if todo else None)
            )
        return active

    @staticmethod
    async def summarize(
        todo_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> WorkSessionSummary:
        sessions = await WorkSessionService.list_for_todo(
            todo_id, user_id, supabase_client
        )
        return summarize_sessions(todo_id, sessions)

    @staticmethod
    async def _get_open_session(
        todo_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> Optional[dict]:
        return first_row(
            await supabase_client.table("work_sessions")
            .select("id")
            .eq("todo_id", str(todo_id))
            .eq("user_id", str(user_id))
            .is_("ended_at", "null")
            .limit(1)
            .execute()
        )
