"""Authentication module."""

from pullquest.auth.client import LoginClient, get_login_client
from pullquest.auth.dependencies import get_current_user, get_login_session, get_optional_user
from pullquest.auth.session import LoginSession

__all__ = [
    "get_current_user",
    "get_login_client",
    "get_login_session",
    "get_optional_user",
    "LoginClient",
    "LoginSession",
]
