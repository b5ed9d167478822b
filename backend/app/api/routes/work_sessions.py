from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from supabase import AsyncClient

from app.api.dependencies import get_current_user_id, get_supabase_request_client
from app.models.response import ApiResponse
from app.models.work_session import (
    ActiveWorkSession,
    WorkSession,
    WorkSessionStart,
    WorkSessionSummary,
)
from app.services.work_session_service import WorkSessionService

router = APIRouter()


@router.post("/start", response_model=ApiResponse[WorkSession])
async def start_session(
    payload: WorkSessionStart,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """Start timing the caller's work on a todo."""
    session = await WorkSessionService.start(
        payload.todo_id, current_user_id, supabase_client
    )
    return ApiResponse(data=session)


@router.post("/stop/{session_id}", response_model=ApiResponse[WorkSession])
async def stop_session(
    session_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    session = await WorkSessionService.stop(
        session_id, current_user_id, supabase_client
    )
    return ApiResponse(data=session)


@router.get("/active", response_model=ApiResponse[List[ActiveWorkSession]])
async def list_active_sessions(
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """List the caller's running sessions with their todos."""
    sessions = await WorkSessionService.list_active(current_user_id, supabase_client)
    return ApiResponse(data=sessions)


@router.get("/todo/{todo_id}", response_model=ApiResponse[List[WorkSession]])
async def list_sessions(
    todo_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    sessions = await WorkSessionService.list_for_todo(
        todo_id, current_user_id, supabase_client
    )
    return ApiResponse(data=sessions)


@router.get("/todo/{todo_id}/summary", response_model=ApiResponse[WorkSessionSummary])
async def summarize_sessions(
    todo_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """Total and per-contributor time spent on a todo."""
    summary = await WorkSessionService.summarize(
        todo_id, current_user_id, supabase_client
    )
    return ApiResponse(data=summary)
