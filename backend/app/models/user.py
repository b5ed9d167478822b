from typing import Optional
from pydantic import BaseModel
from uuid import UUID


class CallerIdentity(BaseModel):
    """The authenticated user a request acts on behalf of."""

    id: UUID
    email: Optional[str] = None


class DirectoryUser(BaseModel):
    id: UUID
    email: str
