from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from app.models import BaseDBModel


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class TeamInvitation(BaseDBModel):
    team_id: UUID
    invited_email: str
    invited_user_id: Optional[UUID] = None
    invited_by: UUID
    status: InvitationStatus = InvitationStatus.PENDING
    responded_at: Optional[datetime] = None


class InvitationSummary(BaseModel):
    """A pending invitation as shown to the invited user."""

    id: UUID
    team_id: UUID
    team_name: str
    team_description: str = ""
    invited_by: UUID
    invited_by_email: str
    created_at: Optional[datetime] = None
