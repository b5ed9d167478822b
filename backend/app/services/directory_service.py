import logging
from typing import Optional
from uuid import UUID

from supabase import AsyncClient

from app.models.user import DirectoryUser

logger = logging.getLogger(__name__)

UNKNOWN_EMAIL = "Unknown"


class DirectoryService:
    """Lookups against auth.users, exposed by SECURITY DEFINER functions in the database."""

    @staticmethod
    async def find_user_by_email(
        email: str, supabase_client: AsyncClient
    ) -> Optional[DirectoryUser]:
        result = (
            await supabase_client.rpc(
                "get_user_by_email", {"user_email": email.strip().lower()}
            ).execute()
        ).data

        if not result:
            return None

        rows = result if isinstance(result, list) else [result]
        return DirectoryUser(**rows[0])

    @staticmethod
    async def get_email(user_id: UUID, supabase_client: AsyncClient) -> str:
        """Resolve a user's email, degrading to a placeholder instead of failing."""
        try:
            email = (
                await supabase_client.rpc(
                    "get_user_email_by_id", {"p_user_id": str(user_id)}
                ).execute()
            ).data
        except Exception as e:
            logger.warning(f"Email lookup failed for user {user_id}: {e}")
            return UNKNOWN_EMAIL

        return email or UNKNOWN_EMAIL
