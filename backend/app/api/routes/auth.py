from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_caller
from app.models.response import ApiResponse
from app.models.user import CallerIdentity

router = APIRouter()


@router.get("/me", response_model=ApiResponse[CallerIdentity])
async def get_current_user_profile(caller: CallerIdentity = Depends(get_current_caller)):
    """Return the identity the bearer token resolves to."""
    return ApiResponse(data=caller)
