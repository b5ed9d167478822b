from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import AsyncClient

from app.db.database import get_service_client, get_client_for_token
from app.exceptions import Unauthenticated
from app.models.user import CallerIdentity

security = HTTPBearer(auto_error=False)


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if not credentials or not credentials.credentials:
        raise Unauthenticated("Missing token")
    return credentials.credentials


async def get_supabase_request_client(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AsyncClient:
    """Get Supabase client bound to the current request's user token."""
    token = _bearer_token(credentials)
    try:
        return await get_client_for_token(token)
    except Exception:
        raise Unauthenticated("Invalid token")


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CallerIdentity:
    """Resolve the bearer token to the calling user through Supabase Auth."""
    token = _bearer_token(credentials)
    try:
        user = await get_service_client().auth.get_user(token)
    except Exception:
        raise Unauthenticated("Invalid token")

    if not user or not user.user:
        raise Unauthenticated("Invalid user")

    return CallerIdentity(id=UUID(user.user.id), email=user.user.email)


async def get_current_user_id(caller: CallerIdentity = Depends(get_current_caller)) -> UUID:
    return caller.id
