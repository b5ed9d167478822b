from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from supabase import AsyncClient

from app.api.dependencies import get_current_user_id, get_supabase_request_client
from app.models.invitation import InvitationSummary, TeamInvitation
from app.models.response import ApiResponse
from app.services.invitation_service import InvitationService

router = APIRouter()


@router.get("", response_model=ApiResponse[List[InvitationSummary]])
async def list_my_invitations(
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    """List the caller's pending invitations."""
    invitations = await InvitationService.list_for_user(
        current_user_id, supabase_client
    )
    return ApiResponse(data=invitations)


@router.post("/{invitation_id}/accept", response_model=ApiResponse[TeamInvitation])
async def accept_invitation(
    invitation_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    invitation = await InvitationService.accept(
        invitation_id, current_user_id, supabase_client
    )
    return ApiResponse(
        data=invitation,
        message="Invitation accepted successfully! Welcome to the team.",
    )


@router.post("/{invitation_id}/decline", response_model=ApiResponse[TeamInvitation])
async def decline_invitation(
    invitation_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    supabase_client: AsyncClient = Depends(get_supabase_request_client),
):
    invitation = await InvitationService.decline(
        invitation_id, current_user_id, supabase_client
    )
    return ApiResponse(data=invitation, message="Invitation declined")
