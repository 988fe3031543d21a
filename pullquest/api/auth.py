"""Authentication API endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from pullquest.auth import LoginSession, get_current_user, get_login_session
from pullquest.auth.models import AuthenticatedUser
from pullquest.constants import LOGIN_PATH

router = APIRouter()


@router.get("/logout")
async def logout(
    session: Annotated[LoginSession, Depends(get_login_session)],
) -> RedirectResponse:
    """Log out the current user."""
    session.logout()
    return RedirectResponse(url=LOGIN_PATH, status_code=302)


@router.get("/me")
async def get_me(user: Annotated[AuthenticatedUser, Depends(get_current_user)]) -> dict[str, Any]:
    """Get current authenticated user."""
    return user.model_dump(mode="json")
