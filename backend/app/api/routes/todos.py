from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status as http_status
from supabase import AsyncClient

from app.api.dependencies import get_current_user_id, get_supabase_request_client
from app.models.response import ApiResponse
from app.models.todo import Todo, TodoCreate, TodoSortField, TodoStatus, TodoUpdate
from app.services.todo_service import TodoService

router = APIRouter()


@router.get("", response_model=ApiResponse[List[Todo]])
async def list_todos(
    status: Optional[TodoStatus] = None,
    team_id: Optional[UUID] = None,
    due_date_from: Optional[datetime] = None,
    due_date_to: Optional[datetime] = None,
    sort_by: TodoSortField = TodoSortField.CREATED_AT,
    sort_order: Literal["asc", "desc"] = "desc",
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """List personal and team todos visible to the caller."""
    todos = await TodoService.list_todos(
        current_user_id,
        supabase_client,
        status=status,
        team_id=team_id,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        sort_by=sort_by,
        descending=sort_order == "desc",
    )
    return ApiResponse(data=todos)


@router.get("/{todo_id}", response_model=ApiResponse[Todo])
async def get_todo(
    todo_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    todo = await TodoService.require_access(todo_id, current_user_id, supabase_client)
    return ApiResponse(data=todo)


@router.post("", response_model=ApiResponse[Todo], status_code=http_status.HTTP_201_CREATED)
async def create_todo(
    payload: TodoCreate,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    todo = await TodoService.create_todo(payload, current_user_id, supabase_client)
    return ApiResponse(data=todo)


@router.put("/{todo_id}", response_model=ApiResponse[Todo])
async def update_todo(
    todo_id: UUID,
    patch: TodoUpdate,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    todo = await TodoService.update_todo(
        todo_id, patch, current_user_id, supabase_client
    )
    return ApiResponse(data=todo)


@router.delete("/{todo_id}", response_model=ApiResponse[None])
async def delete_todo(
    todo_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    await TodoService.delete_todo(todo_id, current_user_id, supabase_client)
    return ApiResponse(message="Todo deleted successfully")
