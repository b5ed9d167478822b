import logging
from typing import Any, Dict, Optional

from postgrest import APIResponse
from postgrest.exceptions import APIError
from supabase import acreate_client, AsyncClient

from app.config import settings

logger = logging.getLogger(__name__)

# Postgres SQLSTATE codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"

service_client: AsyncClient | None = None


async def init_supabase_service_client():
    global service_client
    if not service_client:
        service_client = await acreate_client(
            settings.supabase_url, settings.supabase_service_key
        )
        logger.info("Initialized Supabase service client")


def get_service_client() -> AsyncClient:
    if not service_client:
        raise Exception("supabase service client not initialized")
    return service_client


async def get_client_for_token(access_token: str) -> AsyncClient:
    """Create a client whose PostgREST calls run under the caller's RLS policies."""
    client = await acreate_client(settings.supabase_url, settings.supabase_key)
    client.postgrest.auth(access_token)
    return client


def first_row(response: Optional[APIResponse]) -> Optional[Dict[str, Any]]:
    """Return the first row of a PostgREST response, or None when it matched nothing."""
    if response is None or not response.data:
        return None
    if isinstance(response.data, list):
        return response.data[0]
    return response.data


def is_pg_error(error: APIError, code: str) -> bool:
    return getattr(error, "code", None) == code
