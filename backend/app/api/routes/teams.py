from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from supabase import AsyncClient

from app.api.dependencies import get_current_user_id, get_supabase_request_client
from app.models.invitation import TeamInvitation
from app.models.response import ApiResponse
from app.models.team import (
    InviteRequest,
    Team,
    TeamCreate,
    TeamMember,
    TeamUpdate,
    TeamWithInvitations,
)
from app.services.team_service import TeamService

router = APIRouter()


@router.get("", response_model=ApiResponse[List[Team]])
async def list_teams(
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """List the teams the caller belongs to."""
    teams = await TeamService.list_teams(current_user_id, supabase_client)
    return ApiResponse(data=teams)


@router.post(
    "",
    response_model=ApiResponse[TeamWithInvitations],
    status_code=status.HTTP_201_CREATED,
)
async def create_team(
    payload: TeamCreate,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """Create a team owned by the caller and invite the given emails."""
    result = await TeamService.create_team(payload, current_user_id, supabase_client)
    return ApiResponse(data=result)


@router.put("/{team_id}", response_model=ApiResponse[Team])
async def update_team(
    team_id: UUID,
    patch: TeamUpdate,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    team = await TeamService.update_team(
        team_id, patch, current_user_id, supabase_client
    )
    return ApiResponse(data=team)


@router.delete("/{team_id}", response_model=ApiResponse[None])
async def delete_team(
    team_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    await TeamService.delete_team(team_id, current_user_id, supabase_client)
    return ApiResponse(message="Team deleted successfully")


@router.get("/{team_id}/members", response_model=ApiResponse[List[TeamMember]])
async def list_members(
    team_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    members = await TeamService.list_members(team_id, current_user_id, supabase_client)
    return ApiResponse(data=members)


@router.post("/{team_id}/invite", response_model=ApiResponse[TeamInvitation])
async def invite_member(
    team_id: UUID,
    payload: InviteRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """Invite a registered user to the team by email."""
    invitation = await TeamService.invite_member(
        team_id, payload.email, current_user_id, supabase_client
    )
    return ApiResponse(
        data=invitation,
        message=f"Invitation sent to {invitation.invited_email}",
    )


@router.get(
    "/{team_id}/invitations", response_model=ApiResponse[List[TeamInvitation]]
)
async def list_team_invitations(
    team_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    invitations = await TeamService.list_team_invitations(
        team_id, current_user_id, supabase_client
    )
    return ApiResponse(data=invitations)
