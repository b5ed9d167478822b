import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import AsyncClient

from app.config import settings
from app.db.database import (
    CHECK_VIOLATION,
    UNIQUE_VIOLATION,
    first_row,
    is_pg_error,
)
from app.exceptions import (
    AccessDenied,
    AlreadyMember,
    DuplicateInvitation,
    NotFound,
    TeamFull,
    UserNotFound,
    ValidationError,
)
from app.models.invitation import InvitationStatus, TeamInvitation
from app.models.team import (
    InviteOutcome,
    InviteResult,
    Team,
    TeamCreate,
    TeamMember,
    TeamRole,
    TeamUpdate,
    TeamWithInvitations,
)
from app.services.directory_service import DirectoryService

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _team_full_message(team: Team) -> str:
    return f"Team is full. Maximum {team.max_members} members allowed."


class TeamService:
    @staticmethod
    def validate_max_members(max_members: int) -> int:
        if max_members < 1 or max_members > settings.max_members_limit:
            raise ValidationError(
                f"max_members must be between 1 and {settings.max_members_limit}"
            )
        return max_members

    @staticmethod
    async def get_team(team_id: UUID, supabase_client: AsyncClient) -> Team:
        team = first_row(
            await supabase_client.table("teams")
            .select("*")
            .eq("id", str(team_id))
            .limit(1)
            .execute()
        )
        if not team:
            raise NotFound("Team not found")

        return Team(**team)

    @staticmethod
    async def get_membership(
        team_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> Optional[TeamMember]:
        member = first_row(
            await supabase_client.table("team_members")
            .select("*")
            .match({"team_id": str(team_id), "user_id": str(user_id)})
            .limit(1)
            .execute()
        )
        return TeamMember(**member) if member else None

    @staticmethod
    async def require_member(
        team_id: UUID,
        user_id: UUID,
        supabase_client: AsyncClient,
        message: str = "Access denied",
    ) -> TeamMember:
        membership = await TeamService.get_membership(team_id, user_id, supabase_client)
        if not membership:
            raise AccessDenied(message)
        return membership

    @staticmethod
    async def require_owner(
        team_id: UUID, user_id: UUID, supabase_client: AsyncClient, message: str
    ) -> TeamMember:
        membership = await TeamService.get_membership(team_id, user_id, supabase_client)
        if not membership or membership.role != TeamRole.OWNER:
            raise AccessDenied(message)
        return membership

    @staticmethod
    async def count_members(team_id: UUID, supabase_client: AsyncClient) -> int:
        result = (
            await supabase_client.table("team_members")
            .select("id", count="exact")
            .eq("team_id", str(team_id))
            .execute()
        )
        if result.count is not None:
            return result.count
        return len(result.data or [])

    @staticmethod
    async def list_teams(user_id: UUID, supabase_client: AsyncClient) -> List[Team]:
        """List the teams the user belongs to, newest first."""
        memberships = (
            await supabase_client.table("team_members")
            .select("team_id")
            .eq("user_id", str(user_id))
            .execute()
        ).data

        team_ids = [m["team_id"] for m in memberships]
        if not team_ids:
            return []

        teams = (
            await supabase_client.table("teams")
            .select("*")
            .in_("id", team_ids)
            .order("created_at", desc=True)
            .execute()
        ).data
        return [Team(**team) for team in teams]

    @staticmethod
    async def create_team(
        payload: TeamCreate, creator_user_id: UUID, supabase_client: AsyncClient
    ) -> TeamWithInvitations:
        """Create a team owned by the creator, then invite each email on a best-effort basis."""
        name = payload.name.strip()
        if not name:
            raise ValidationError("Team name is required")
        max_members = TeamService.validate_max_members(
            payload.max_members
            if payload.max_members is not None
            else settings.default_max_members
        )

        team = Team(
            **(
                await supabase_client.table("teams")
                .insert(
                    {
                        "name": name,
                        "description": payload.description or None,
                        "max_members": max_members,
                    },
                    returning="representation",
                )
                .execute()
            ).data[0]
        )

        try:
            await TeamService.add_member(
                team.id, creator_user_id, TeamRole.OWNER, supabase_client
            )
        except Exception:
            logger.warning(
                f"Owner membership insert failed for team {team.id}, removing team"
            )
            await supabase_client.table("teams").delete().eq(
                "id", str(team.id)
            ).execute()
            raise

        logger.info(f"User {creator_user_id} created team {team.id}")

        invitations = []
        for email in payload.invite_emails:
            invitations.append(
                await TeamService._invite_on_create(
                    team, email, creator_user_id, supabase_client
                )
            )

        return TeamWithInvitations(team=team, invitations=invitations)

    @staticmethod
    async def _invite_on_create(
        team: Team, email: str, inviter_id: UUID, supabase_client: AsyncClient
    ) -> InviteResult:
        email = email.strip().lower()
        try:
            invited_user = await DirectoryService.find_user_by_email(
                email, supabase_client
            )
            if not invited_user:
                return InviteResult(email=email, status=InviteOutcome.USER_NOT_FOUND)

            if await TeamService.get_membership(
                team.id, invited_user.id, supabase_client
            ):
                return InviteResult(email=email, status=InviteOutcome.ALREADY_MEMBER)

            if await TeamService._pending_invitation_exists(
                team.id, email, supabase_client
            ):
                return InviteResult(email=email, status=InviteOutcome.ALREADY_INVITED)

            await TeamService._insert_invitation(
                team.id, email, invited_user.id, inviter_id, supabase_client
            )
            return InviteResult(email=email, status=InviteOutcome.INVITED)
        except DuplicateInvitation:
            return InviteResult(email=email, status=InviteOutcome.ALREADY_INVITED)
        except Exception as e:
            logger.error(f"Error inviting {email} to team {team.id}: {e}")
            return InviteResult(email=email, status=InviteOutcome.ERROR)

    @staticmethod
    async def update_team(
        team_id: UUID, patch: TeamUpdate, user_id: UUID, supabase_client: AsyncClient
    ) -> Team:
        await TeamService.get_team(team_id, supabase_client)
        await TeamService.require_owner(
            team_id,
            user_id,
            supabase_client,
            "Only team owners can update team settings",
        )

        payload = {"updated_at": _now()}
        if patch.name is not None:
            if not patch.name.strip():
                raise ValidationError("Team name is required")
            payload["name"] = patch.name.strip()
        # an explicit null clears the description
        if "description" in patch.model_fields_set:
            payload["description"] = patch.description or None
        if patch.max_members is not None:
            max_members = TeamService.validate_max_members(patch.max_members)
            member_count = await TeamService.count_members(team_id, supabase_client)
            if max_members < member_count:
                raise ValidationError(
                    f"max_members cannot be lower than the current member count ({member_count})"
                )
            payload["max_members"] = max_members

        team = first_row(
            await supabase_client.table("teams")
            .update(payload, returning="representation")
            .eq("id", str(team_id))
            .execute()
        )
        if not team:
            raise NotFound("Team not found")

        return Team(**team)

    @staticmethod
    async def delete_team(
        team_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> None:
        """Delete a team. Memberships go first so no row is left pointing at a missing team."""
        await TeamService.get_team(team_id, supabase_client)
        await TeamService.require_owner(
            team_id, user_id, supabase_client, "Only team owners can delete teams"
        )

        await supabase_client.table("team_members").delete().eq(
            "team_id", str(team_id)
        ).execute()
        await supabase_client.table("teams").delete().eq("id", str(team_id)).execute()

        logger.info(f"User {user_id} deleted team {team_id}")

    @staticmethod
    async def list_members(
        team_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> List[TeamMember]:
        await TeamService.get_team(team_id, supabase_client)
        await TeamService.require_member(team_id, user_id, supabase_client)

        members = (
            await supabase_client.table("team_members")
            .select("*")
            .eq("team_id", str(team_id))
            .order("joined_at", desc=False)
            .execute()
        ).data

        emails = await asyncio.gather(
            *[
                DirectoryService.get_email(member["user_id"], supabase_client)
                for member in members
            ]
        )

        return [
            TeamMember(**member, email=email)
            for member, email in zip(members, emails)
        ]

    @staticmethod
    async def add_member(
        team_id: UUID, user_id: UUID, role: TeamRole, supabase_client: AsyncClient
    ) -> TeamMember:
        member = (
            await supabase_client.table("team_members")
            .insert(
                {
                    "team_id": str(team_id),
                    "user_id": str(user_id),
                    "role": role.value,
                    "joined_at": _now(),
                },
                returning="representation",
            )
            .execute()
        ).data[0]

        return TeamMember(**member)

    @staticmethod
    async def add_member_within_capacity(
        team: Team, user_id: UUID, role: TeamRole, supabase_client: AsyncClient
    ) -> bool:
        """Insert a membership without letting the team exceed max_members.

        The count is taken again after the insert; if a concurrent insert pushed
        the team over capacity, this insert is undone and TeamFull raised.
        Returns False when the membership already existed.
        """
        if await TeamService.count_members(team.id, supabase_client) >= team.max_members:
            raise TeamFull(_team_full_message(team))

        try:
            await TeamService.add_member(team.id, user_id, role, supabase_client)
        except APIError as e:
            if is_pg_error(e, UNIQUE_VIOLATION):
                return False
            if is_pg_error(e, CHECK_VIOLATION):
                raise TeamFull(_team_full_message(team))
            raise

        if await TeamService.count_members(team.id, supabase_client) > team.max_members:
            logger.warning(
                f"Team {team.id} went over capacity adding user {user_id}, undoing insert"
            )
            await TeamService.remove_member(team.id, user_id, supabase_client)
            raise TeamFull(_team_full_message(team))

        return True

    @staticmethod
    async def remove_member(
        team_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> None:
        await supabase_client.table("team_members").delete().match(
            {"team_id": str(team_id), "user_id": str(user_id)}
        ).execute()

    @staticmethod
    async def invite_member(
        team_id: UUID, email: str, user_id: UUID, supabase_client: AsyncClient
    ) -> TeamInvitation:
        team = await TeamService.get_team(team_id, supabase_client)
        await TeamService.require_member(
            team_id,
            user_id,
            supabase_client,
            "Access denied. You must be a team member to invite others.",
        )

        if await TeamService.count_members(team_id, supabase_client) >= team.max_members:
            raise TeamFull(_team_full_message(team))

        email = email.strip().lower()
        invited_user = await DirectoryService.find_user_by_email(email, supabase_client)
        if not invited_user:
            raise UserNotFound(
                f"No user found with email: {email}. They must sign up first."
            )

        if await TeamService.get_membership(team_id, invited_user.id, supabase_client):
            raise AlreadyMember()

        if await TeamService._pending_invitation_exists(team_id, email, supabase_client):
            raise DuplicateInvitation()

        invitation = await TeamService._insert_invitation(
            team_id, email, invited_user.id, user_id, supabase_client
        )
        logger.info(f"User {user_id} invited {email} to team {team_id}")
        return invitation

    @staticmethod
    async def list_team_invitations(
        team_id: UUID, user_id: UUID, supabase_client: AsyncClient
    ) -> List[TeamInvitation]:
        await TeamService.get_team(team_id, supabase_client)
        await TeamService.require_member(team_id, user_id, supabase_client)

        invitations = (
            await supabase_client.table("team_invitations")
            .select("*")
            .eq("team_id", str(team_id))
            .eq("status", InvitationStatus.PENDING.value)
            .order("created_at", desc=True)
            .execute()
        ).data
        return [TeamInvitation(**invitation) for invitation in invitations]

    @staticmethod
    async def _pending_invitation_exists(
        team_id: UUID, email: str, supabase_client: AsyncClient
    ) -> bool:
        existing = (
            await supabase_client.table("team_invitations")
            .select("id")
            .eq("team_id", str(team_id))
            .eq("invited_email", email)
            .eq("status", InvitationStatus.PENDING.value)
            .limit(1)
            .execute()
        ).data
        return bool(existing)

    @staticmethod
    async def _insert_invitation(
        team_id: UUID,
        email: str,
        invited_user_id: UUID,
        inviter_id: UUID,
        supabase_client: AsyncClient,
    ) -> TeamInvitation:
        # uq_pending_invitation backs up the pre-check against concurrent invites
        try:
            invitation = (
                await supabase_client.table("team_invitations")
                .insert(
                    {
                        "team_id": str(team_id),
                        "invited_by": str(inviter_id),
                        "invited_email": email,
                        "invited_user_id": str(invited_user_id),
                        "status": InvitationStatus.PENDING.value,
                    },
                    returning="representation",
                )
                .execute()
            ).data[0]
        except APIError as e:
            if is_pg_error(e, UNIQUE_VIOLATION):
                raise DuplicateInvitation()
            raise

        return TeamInvitation(**invitation)
