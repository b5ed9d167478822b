from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models import BaseDBModel


class TeamRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class InviteOutcome(str, Enum):
    INVITED = "invited"
    ALREADY_MEMBER = "already_member"
    ALREADY_INVITED = "already_invited"
    USER_NOT_FOUND = "user_not_found"
    ERROR = "error"


class TeamBase(BaseModel):
    name: str = Field(..., max_length=120)
    description: Optional[str] = None


class TeamCreate(TeamBase):
    max_members: Optional[int] = None
    invite_emails: List[str] = []


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    max_members: Optional[int] = None


class Team(TeamBase, BaseDBModel):
    max_members: int = 10
    updated_at: Optional[datetime] = None


class TeamMember(BaseModel):
    team_id: UUID
    user_id: UUID
    role: TeamRole = TeamRole.MEMBER
    joined_at: Optional[datetime] = None
    email: Optional[str] = None


class InviteRequest(BaseModel):
    email: EmailStr


class InviteResult(BaseModel):
    email: str
    status: InviteOutcome


class TeamWithInvitations(BaseModel):
    team: Team
    invitations: List[InviteResult] = []
