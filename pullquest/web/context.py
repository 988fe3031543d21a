"""Template context helpers."""

from functools import partial
from typing import Any

from fastapi import Request

from pullquest.auth.models import AuthenticatedUser, Role
from pullquest.auth.session import LoginSession
from pullquest.config import get_settings
from pullquest.i18n import available_locales, negotiate_locale, t


def resolve_locale(request: Request, session: LoginSession) -> str:
    """Session choice first, then the browser's Accept-Language."""
    if session.locale in available_locales():
        return session.locale
    return negotiate_locale(request.headers.get("accept-language"))


def get_base_context(
    request: Request,
    session: LoginSession,
    user: AuthenticatedUser | None = None,
) -> dict[str, Any]:
    """Get base context for all templates."""
    locale = resolve_locale(request, session)

    return {
        "request": request,
        "user": user,
        "locale": locale,
        "t": partial(t, locale=locale),  # Translation function bound to current locale
        "app_name": get_settings().app_name,
        "flashes": session.pop_flashes(),
        "roles": list(Role),
    }
