"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from pullquest.auth.models import AuthenticatedUser
from pullquest.auth.session import LoginSession


def get_login_session(request: Request) -> LoginSession:
    """Login state for the requesting browser."""
    return LoginSession(request.session)


async def get_optional_user(
    session: Annotated[LoginSession, Depends(get_login_session)],
) -> AuthenticatedUser | None:
    """Get current user from session if logged in."""
    return session.user


async def get_current_user(
    user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
) -> AuthenticatedUser:
    """Get current user, raising 401 if not authenticated."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user
