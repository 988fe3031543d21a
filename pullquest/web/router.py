"""Web routes for Jinja2 templates."""

import logging
from functools import partial
from pathlib import Path
from typing import Annotated, assert_never

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from pullquest.auth import (
    LoginClient,
    LoginSession,
    get_current_user,
    get_login_client,
    get_login_session,
    get_optional_user,
)
from pullquest.auth.flow import (
    InvalidTransition,
    SubmitStatus,
    begin_oauth,
    go_back,
    resolve_callback,
    submit_credentials,
)
from pullquest.auth.models import AuthenticatedUser, CredentialsForm, LoginPhase, Role
from pullquest.config import get_settings
from pullquest.constants import LOGIN_PATH, OAUTH_USER_PARAM, SIGNUP_PATH
from pullquest.i18n import t
from pullquest.web.context import get_base_context, resolve_locale

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

web_router = APIRouter()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _render_login(
    request: Request,
    session: LoginSession,
    form: CredentialsForm | None = None,
    error: str | None = None,
    missing: list[str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    """Render the page for the current login phase."""
    context = get_base_context(request, session)
    phase = session.phase

    match phase:
        case LoginPhase.INITIAL:
            pass
        case LoginPhase.OAUTH_PENDING:
            verified = session.verified
            if verified is not None:
                context["phase"] = phase.value
                context["verified"] = verified
                return templates.TemplateResponse(
                    request, "auth/login.html", context, status_code=status_code
                )
            logger.warning("OAuth pending without verified identity, back to the form")
            session.reset()
        case LoginPhase.SUCCESS:
            # Signed out since, start over
            session.reset()
        case _ as unreachable:
            assert_never(unreachable)

    if form is None:
        form = CredentialsForm(**session.draft)
    context["phase"] = LoginPhase.INITIAL.value
    context["form"] = form
    context["selected_role"] = form.parsed_role
    context["can_submit"] = form.can_submit
    context["error"] = error
    context["missing"] = missing or []
    return templates.TemplateResponse(request, "auth/login.html", context, status_code=status_code)


@web_router.get("/login", response_class=HTMLResponse, response_model=None)
async def login_page(
    request: Request,
    session: Annotated[LoginSession, Depends(get_login_session)],
    user_param: Annotated[str | None, Query(alias=OAUTH_USER_PARAM)] = None,
) -> HTMLResponse | RedirectResponse:
    """Render login page, or finish an OAuth login when ``?user=`` is present."""
    outcome = resolve_callback(session, user_param)
    if outcome is not None:
        # 303 to a clean URL so the callback query is not revisited
        return RedirectResponse(url=outcome.redirect_to, status_code=status.HTTP_303_SEE_OTHER)

    user = session.user
    if user:
        return RedirectResponse(url=user.dashboard_path, status_code=status.HTTP_302_FOUND)

    return _render_login(request, session)


@web_router.post("/login", response_class=HTMLResponse, response_model=None)
async def login_submit(
    request: Request,
    session: Annotated[LoginSession, Depends(get_login_session)],
    client: Annotated[LoginClient, Depends(get_login_client)],
    role: Annotated[str | None, Form()] = None,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    github_username: Annotated[str, Form()] = "",
) -> HTMLResponse | RedirectResponse:
    """Verify credentials (step 1)."""
    form = CredentialsForm(
        role=role,
        email=email,
        password=password,
        github_username=github_username,
    )
    outcome = await submit_credentials(session, form, client)

    match outcome.status:
        case SubmitStatus.BLOCKED:
            return _render_login(
                request,
                session,
                form=form.model_copy(update={"password": ""}),
                missing=outcome.missing,
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        case SubmitStatus.REJECTED:
            return _render_login(
                request,
                session,
                form=form.model_copy(update={"password": ""}),
                error=outcome.error,
                status_code=(
                    status.HTTP_504_GATEWAY_TIMEOUT if outcome.timed_out else status.HTTP_400_BAD_REQUEST
                ),
            )
        case SubmitStatus.OAUTH_PENDING:
            return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
        case SubmitStatus.NAVIGATE:
            return RedirectResponse(
                url=outcome.redirect_to or LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER
            )
        case _ as unreachable:
            assert_never(unreachable)


@web_router.get("/login/github-field", response_class=HTMLResponse)
async def github_field(
    request: Request,
    session: Annotated[LoginSession, Depends(get_login_session)],
    role: Annotated[str | None, Query()] = None,
    github_username: Annotated[str, Query()] = "",
) -> HTMLResponse:
    """HTMX partial: the GitHub username input, only for roles that need it."""
    return templates.TemplateResponse(
        request,
        "partials/github_field.html",
        {
            "selected_role": Role.parse(role),
            "github_username": github_username,
            "t": partial(t, locale=resolve_locale(request, session)),
        },
    )


@web_router.post("/login/github", response_model=None)
async def login_github(
    session: Annotated[LoginSession, Depends(get_login_session)],
) -> RedirectResponse:
    """Save the pre-OAuth snapshot and hand off to GitHub (step 2)."""
    try:
        url = begin_oauth(session, get_settings())
    except InvalidTransition as e:
        logger.warning(str(e))
        return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@web_router.post("/login/back", response_model=None)
async def login_back(
    session: Annotated[LoginSession, Depends(get_login_session)],
) -> RedirectResponse:
    """Leave the GitHub step and return to the credentials form."""
    try:
        go_back(session)
    except InvalidTransition as e:
        logger.info(str(e))
    return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)


@web_router.get(SIGNUP_PATH, response_class=HTMLResponse)
async def signup_page(
    request: Request,
    session: Annotated[LoginSession, Depends(get_login_session)],
    user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
) -> HTMLResponse:
    """Render sign-up information page."""
    context = get_base_context(request, session, user)
    return templates.TemplateResponse(request, "auth/signup.html", context)


@web_router.get("/{role}/dashboard", response_class=HTMLResponse, response_model=None)
async def dashboard(
    request: Request,
    role: str,
    session: Annotated[LoginSession, Depends(get_login_session)],
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> HTMLResponse | RedirectResponse:
    """Render the role dashboard."""
    page_role = Role.parse(role)
    if page_role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown role")

    user_role = user.role or Role.CONTRIBUTOR
    if page_role != user_role:
        return RedirectResponse(url=user_role.dashboard_path, status_code=status.HTTP_302_FOUND)

    context = get_base_context(request, session, user)
    context["page_role"] = page_role
    return templates.TemplateResponse(request, "pages/dashboard.html", context)
