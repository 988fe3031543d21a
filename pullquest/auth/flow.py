"""Sequencing of the two-step login.

Step 1 verifies credentials with the backend. Contributors and maintainers
then go through GitHub OAuth on the backend, which sends the browser back to
``/login?user=<url-encoded JSON>``. Companies go straight to their dashboard.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import assert_never
from urllib.parse import unquote

from pydantic import ValidationError

from pullquest.auth.client import LoginClient
from pullquest.auth.models import (
    AuthenticatedUser,
    CredentialsForm,
    LoginPhase,
    PreOAuthSnapshot,
    Role,
)
from pullquest.auth.session import LoginSession, UserRecordTooLarge
from pullquest.config import Settings
from pullquest.constants import (
    LOGIN_PATH,
    MAX_USER_PARAM_LENGTH,
    MSG_OAUTH_ERROR,
    MSG_OAUTH_SUCCESS,
)
from pullquest.utils.logging import LogContext

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """Raised when an action is not allowed from the current phase."""

    def __init__(self, action: str, phase: LoginPhase) -> None:
        super().__init__(f"Cannot {action} from phase {phase.value!r}")
        self.action = action
        self.phase = phase


class SubmitStatus(str, Enum):
    BLOCKED = "blocked"
    REJECTED = "rejected"
    OAUTH_PENDING = "oauth_pending"
    NAVIGATE = "navigate"


@dataclass
class SubmitOutcome:
    status: SubmitStatus
    error: str | None = None
    redirect_to: str | None = None
    timed_out: bool = False
    missing: list[str] | None = None


@dataclass
class CallbackOutcome:
    success: bool
    redirect_to: str
    user: AuthenticatedUser | None = None


async def submit_credentials(
    session: LoginSession,
    form: CredentialsForm,
    client: LoginClient,
) -> SubmitOutcome:
    """Verify the form with the login API and move the flow forward."""
    missing = form.missing_fields()
    if missing:
        session.save_draft(form.draft())
        return SubmitOutcome(status=SubmitStatus.BLOCKED, missing=missing)

    match session.phase:
        case LoginPhase.INITIAL:
            pass
        case LoginPhase.OAUTH_PENDING | LoginPhase.SUCCESS:
            # Resubmitted from a stale page, start over
            session.reset()
        case _ as unreachable:
            assert_never(unreachable)

    credentials = form.to_credentials()
    log = LogContext(logger, role=credentials.role.value, email=credentials.email)
    result = await client.login(credentials)

    if not result.success:
        session.save_draft(form.draft())
        log.info("Credentials rejected")
        return SubmitOutcome(
            status=SubmitStatus.REJECTED,
            error=result.error,
            timed_out=result.timed_out,
        )

    session.clear_draft()
    match credentials.role:
        case Role.CONTRIBUTOR | Role.MAINTAINER:
            session.mark_verified(credentials.role, credentials.email, credentials.github_username)
            session.phase = LoginPhase.OAUTH_PENDING
            log.info("Credentials verified, waiting for GitHub OAuth")
            return SubmitOutcome(status=SubmitStatus.OAUTH_PENDING)
        case Role.COMPANY:
            # No GitHub link for companies: the login check itself signs them in
            record = {**(result.user or {}), "email": credentials.email, "role": Role.COMPANY.value}
            try:
                session.set_user(AuthenticatedUser.model_validate(record))
            except UserRecordTooLarge as e:
                log.warning(f"Backend user record dropped: {e}")
                session.set_user(AuthenticatedUser(email=credentials.email, role=Role.COMPANY))
            session.phase = LoginPhase.SUCCESS
            log.info("Credentials verified, no GitHub link needed")
            return SubmitOutcome(
                status=SubmitStatus.NAVIGATE,
                redirect_to=credentials.role.dashboard_path,
            )
        case _ as unreachable:
            assert_never(unreachable)


def begin_oauth(session: LoginSession, settings: Settings) -> str:
    """Checkpoint the verified identity and return the GitHub OAuth URL."""
    phase = session.phase
    match phase:
        case LoginPhase.OAUTH_PENDING:
            pass
        case LoginPhase.INITIAL | LoginPhase.SUCCESS:
            raise InvalidTransition("start GitHub OAuth", phase)
        case _ as unreachable:
            assert_never(unreachable)

    verified = session.verified
    if verified is None:
        session.reset()
        raise InvalidTransition("start GitHub OAuth without verified credentials", phase)

    session.save_snapshot(verified)
    logger.info(f"Redirecting {verified.role.value} to GitHub OAuth")
    return settings.github_oauth_url


def go_back(session: LoginSession) -> None:
    """Drop verification and return to the credentials form."""
    phase = session.phase
    match phase:
        case LoginPhase.OAUTH_PENDING:
            session.reset()
        case LoginPhase.INITIAL:
            pass
        case LoginPhase.SUCCESS:
            raise InvalidTransition("go back", phase)
        case _ as unreachable:
            assert_never(unreachable)


def decode_user_param(raw: str) -> AuthenticatedUser:
    """Decode the ``user`` query value into a user record.

    Raises ValueError if it is not URL-encoded JSON describing an object
    with a known (or missing) role, or if it is too long or too deeply
    nested to parse.
    """
    if len(raw) > MAX_USER_PARAM_LENGTH:
        raise ValueError(f"User parameter is {len(raw)} characters, limit is {MAX_USER_PARAM_LENGTH}")
    decoded = unquote(raw)
    try:
        data = json.loads(decoded)
    except RecursionError as e:
        raise ValueError("User parameter is nested too deeply") from e
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return AuthenticatedUser.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid user record: {e.error_count()} error(s)") from e


def _apply_snapshot(user: AuthenticatedUser, snapshot: PreOAuthSnapshot | None) -> AuthenticatedUser:
    if snapshot is None:
        return user
    if user.role is None:
        return user.model_copy(update={"role": snapshot.role})
    if user.role != snapshot.role:
        logger.warning(
            f"OAuth user role {user.role.value!r} differs from pre-OAuth role "
            f"{snapshot.role.value!r}, keeping the OAuth role"
        )
    return user


def resolve_callback(session: LoginSession, raw: str | None) -> CallbackOutcome | None:
    """Establish the session from the OAuth callback, if there is one.

    Returns None when no (or an empty) user parameter was given.
    """
    if not raw:
        return None

    try:
        user = decode_user_param(raw)
        user = _apply_snapshot(user, session.consume_snapshot())
        session.set_user(user)
    except (ValueError, RecursionError) as e:
        # json.JSONDecodeError and UserRecordTooLarge are ValueErrors
        logger.error(f"Rejected OAuth user: {e}")
        session.flash("error", MSG_OAUTH_ERROR)
        session.consume_snapshot()
        session.reset()
        return CallbackOutcome(success=False, redirect_to=LOGIN_PATH)

    session.clear_verified()
    session.phase = LoginPhase.SUCCESS
    session.flash("success", MSG_OAUTH_SUCCESS)
    logger.info(f"OAuth login completed for role {(user.role or Role.CONTRIBUTOR).value}")
    return CallbackOutcome(success=True, redirect_to=user.dashboard_path, user=user)
