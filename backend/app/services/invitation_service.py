import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from supabase import AsyncClient

from app.db.database import first_row
from app.exceptions import NotFound
from app.models.invitation import InvitationStatus, InvitationSummary, TeamInvitation
from app.models.team import TeamRole
from app.services.directory_service import DirectoryService
from app.services.team_service import TeamService

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Invitation not found or already processed"


class InvitationService:
    @staticmethod
    async def list_for_user(
        user_id: UUID, supabase_client: AsyncClient
    ) -> List[InvitationSummary]:
        """List the user's pending invitations with team and inviter details."""
        invitations = (
            await supabase_client.table("team_invitations")
            .select("*, teams:team_id(name, description)")
            .eq("invited_user_id", str(user_id))
            .eq("status", InvitationStatus.PENDING.value)
            .order("created_at", desc=True)
            .execute()
        ).data

        inviter_emails = await asyncio.gather(
            *[
                DirectoryService.get_email(invitation["invited_by"], supabase_client)
                for invitation in invitations
            ]
        )

        summaries = []
        for invitation, inviter_email in zip(invitations, inviter_emails):
            team = invitation.get("teams") or {}
            summaries.append(
                InvitationSummary(
                    id=invitation["id"],
                    team_id=invitation["team_id"],
                    team_name=team.get("name") or "Unknown Team",
                    team_description=team.get("description") or "",
                    invited_by=invitation["invited_by"],
                    invited_by_email=inviter_email,
                    created_at=invitation.get("created_at"),
                )
            )
        return summaries

    @staticmethod
    async def get_for_user(
        invitation_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> Optional[TeamInvitation]:
        invitation = first_row(
            await supabase_client.table("team_invitations")
            .select("*")
            .eq("id", str(invitation_id))
            .eq("invited_user_id", str(user_id))
            .limit(1)
            .execute()
        )
        return TeamInvitation(**invitation) if invitation else None

    @staticmethod
    async def get_pending(
        invitation_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> TeamInvitation:
        invitation = await InvitationService.get_for_user(
            invitation_id, user_id, supabase_client
        )
        if not invitation or invitation.status != InvitationStatus.PENDING:
            raise NotFound(NOT_FOUND_MESSAGE)
        return invitation

    @staticmethod
    async def accept(
        invitation_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> TeamInvitation:
        """Accept a pending invitation and join its team.

        The membership is written before the invitation leaves `pending`, so a
        failure between the two steps leaves an invitation that can simply be
        accepted again; the existing membership is then reused.
        """
        invitation = await InvitationService.get_pending(
            invitation_id, user_id, supabase_client
        )
        team = await TeamService.get_team(invitation.team_id, supabase_client)

        inserted = False
        if await TeamService.get_membership(team.id, user_id, supabase_client):
            logger.info(
                f"User {user_id} already in team {team.id}, completing invitation {invitation_id}"
            )
        else:
            inserted = await TeamService.add_member_within_capacity(
                team, user_id, TeamRole.MEMBER, supabase_client
            )

        accepted = await InvitationService._transition(
            invitation_id, user_id, InvitationStatus.ACCEPTED, supabase_client
        )
        if not accepted:
            current = await InvitationService.get_for_user(
                invitation_id, user_id, supabase_client
            )
            if inserted and (
                current is None or current.status != InvitationStatus.ACCEPTED
            ):
                logger.warning(
                    f"Invitation {invitation_id} was processed concurrently, removing membership"
                )
                await TeamService.remove_member(team.id, user_id, supabase_client)
            raise NotFound(NOT_FOUND_MESSAGE)

        logger.info(f"User {user_id} accepted invitation {invitation_id}")
        return accepted

    @staticmethod
    async def decline(
        invitation_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> TeamInvitation:
        await InvitationService.get_pending(invitation_id, user_id, supabase_client)

        declined = await InvitationService._transition(
            invitation_id, user_id, InvitationStatus.DECLINED, supabase_client
        )
        if not declined:
            raise NotFound(NOT_FOUND_MESSAGE)

        logger.info(f"User {user_id} declined invitation {invitation_id}")
        return declined

    @staticmethod
    async def _transition(
        invitation_id: UUID,
        user_id: UUID,
        new_status: InvitationStatus,
        supabase_client: AsyncClient,
    ) -> Optional[TeamInvitation]:
        """Move a pending invitation to a terminal status.

        Filtering on status=pending makes this a compare-and-swap: only the
        first writer matches a row, later writers get None back.
        """
        updated = first_row(
            await supabase_client.table("team_invitations")
            .update(
                {
                    "status": new_status.value,
                    "responded_at": datetime.now(timezone.utc).isoformat(),
                },
                returning="representation",
            )
            .eq("id", str(invitation_id))
            .eq("invited_user_id", str(user_id))
            .eq("status", InvitationStatus.PENDING.value)
            .execute()
        )
        return TeamInvitation(**updated) if updated else None
