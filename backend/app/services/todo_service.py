import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from supabase import AsyncClient

from app.db.database import first_row
from app.exceptions import AccessDenied, NotFound
from app.models.todo import Todo, TodoCreate, TodoSortField, TodoStatus, TodoUpdate
from app.services.team_service import TeamService

logger = logging.getLogger(__name__)


class TodoService:
    @staticmethod
    async def require_access(
        todo_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> Todo:
        """Load a todo the user may work on: team todos need membership, personal ones ownership."""
        row = first_row(
            await supabase_client.table("todos")
            .select("*")
            .eq("id", str(todo_id))
            .limit(1)
            .execute()
        )
        if not row:
            raise NotFound("Todo not found")

        todo = Todo(**row)
        if todo.team_id:
            await TeamService.require_member(todo.team_id, user_id, supabase_client)
        elif todo.user_id != user_id:
            raise AccessDenied()

        return todo

    @staticmethod
    async def list_todos(
        user_id: UUID,
        supabase_client: AsyncClient,
        status: Optional[TodoStatus] = None,
        team_id: Optional[UUID] = None,
        due_date_from: Optional[datetime] = None,
        due_date_to: Optional[datetime] = None,
        sort_by: TodoSortField = TodoSortField.CREATED_AT,
        descending: bool = True,
    ) -> List[Todo]:
        """List personal todos plus todos of the user's teams."""
        if team_id:
            await TeamService.require_member(team_id, user_id, supabase_client)
            team_ids = [str(team_id)]
        else:
            team_ids = [
                str(team.id)
                for team in await TeamService.list_teams(user_id, supabase_client)
            ]

        def apply_filters(query):
            if status:
                query = query.eq("status", status.value)
            if due_date_from:
                query = query.gte("due_date", due_date_from.isoformat())
            if due_date_to:
                query = query.lte("due_date", due_date_to.isoformat())
            return query

        rows = []
        if not team_id:
            rows += (
                await apply_filters(
                    supabase_client.table("todos")
                    .select("*")
                    .eq("user_id", str(user_id))
                    .is_("team_id", "null")
                ).execute()
            ).data
        if team_ids:
            rows += (
                await apply_filters(
                    supabase_client.table("todos").select("*").in_("team_id", team_ids)
                ).execute()
            ).data

        todos = [Todo(**row) for row in rows]
        todos.sort(
            key=lambda todo: _sort_key(getattr(todo, sort_by.value)),
            reverse=descending,
        )
        return todos

    @staticmethod
    async def create_todo(
        payload: TodoCreate, user_id: UUID, supabase_client: AsyncClient
    ) -> Todo:
        if payload.team_id:
            await TeamService.require_member(payload.team_id, user_id, supabase_client)

        todo = (
            await supabase_client.table("todos")
            .insert(
                {
                    "user_id": str(user_id),
                    "team_id": str(payload.team_id) if payload.team_id else None,
                    "name": payload.name,
                    "description": payload.description,
                    "due_date": payload.due_date.isoformat(),
                    "status": payload.status.value,
                },
                returning="representation",
            )
            .execute()
        ).data[0]

        return Todo(**todo)

    @staticmethod
    async def update_todo(
        todo_id: UUID, patch: TodoUpdate, user_id: UUID, supabase_client: AsyncClient
    ) -> Todo:
        await TodoService.require_access(todo_id, user_id, supabase_client)

        payload = patch.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if patch.team_id:
            await TeamService.require_member(patch.team_id, user_id, supabase_client)
        payload["updated_at"] = datetime.now(timezone.utc).isoformat()

        todo = first_row(
            await supabase_client.table("todos")
            .update(payload, returning="representation")
            .eq("id", str(todo_id))
            .execute()
        )
        if not todo:
            raise NotFound("Todo not found")

        return Todo(**todo)

    @staticmethod
    async def delete_todo(
        todo_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> None:
        await TodoService.require_access(todo_id, user_id, supabase_client)
        await supabase_client.table("todos").delete().eq("id", str(todo_id)).execute()
        logger.info(f"User {user_id} deleted todo {todo_id}")


def _sort_key(value):
    if value is None:
        return (0, "")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (1, value.timestamp())
    if hasattr(value, "value"):
        value = value.value
    return (1, value)
