"""Current-user route."""

from fastapi import APIRouter, Depends

from taskkeep.auth.dependencies import CurrentUser, get_current_user
from taskkeep.schemas.task import UserRead

router = APIRouter()


@router.get("/user", response_model=UserRead)
async def get_me(current: CurrentUser = Depends(get_current_user)):
    """The signed-in user's record, as captured at first login."""
    return current.user
