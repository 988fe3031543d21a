"""Login state kept in the signed session cookie."""

import json
import logging
from collections.abc import MutableMapping
from typing import Any, Literal

from pydantic import ValidationError

from pullquest.auth.models import AuthenticatedUser, LoginPhase, PreOAuthSnapshot, Role
from pullquest.constants import (
    MAX_SESSION_USER_BYTES,
    PRE_OAUTH_SNAPSHOT_KEY,
    SESSION_KEY_DRAFT,
    SESSION_KEY_FLASHES,
    SESSION_KEY_LOCALE,
    SESSION_KEY_PHASE,
    SESSION_KEY_USER,
    SESSION_KEY_VERIFIED,
)

logger = logging.getLogger(__name__)

FlashLevel = Literal["success", "error", "info"]


class UserRecordTooLarge(ValueError):
    """Raised when a user record would not fit in the session cookie."""

    def __init__(self, size: int) -> None:
        super().__init__(f"User record is {size} bytes, limit is {MAX_SESSION_USER_BYTES}")
        self.size = size


class LoginSession:
    """Single owner of the per-browser login state.

    Wraps the mapping exposed by Starlette's ``SessionMiddleware``. Routes get
    one of these through ``get_login_session`` and never touch the raw session
    keys. The authenticated user is only ever written through ``set_user``.
    """

    def __init__(self, store: MutableMapping[str, Any]) -> None:
        self._store = store

    # ---- phase -------------------------------------------------------------

    @property
    def phase(self) -> LoginPhase:
        raw = self._store.get(SESSION_KEY_PHASE)
        try:
            return LoginPhase(raw) if raw else LoginPhase.INITIAL
        except ValueError:
            logger.warning(f"Ignoring unknown login phase in session: {raw!r}")
            return LoginPhase.INITIAL

    @phase.setter
    def phase(self, value: LoginPhase) -> None:
        self._store[SESSION_KEY_PHASE] = value.value

    # ---- verified identity (between step 1 and the OAuth redirect) ----------

    @property
    def verified(self) -> PreOAuthSnapshot | None:
        raw = self._store.get(SESSION_KEY_VERIFIED)
        if not raw:
            return None
        try:
            return PreOAuthSnapshot.model_validate(raw)
        except ValidationError:
            self._store.pop(SESSION_KEY_VERIFIED, None)
            return None

    def mark_verified(self, role: Role, email: str, github_username: str | None) -> None:
        self._store[SESSION_KEY_VERIFIED] = PreOAuthSnapshot(
            role=role, email=email, github_username=github_username
        ).model_dump(mode="json", by_alias=True)

    def clear_verified(self) -> None:
        self._store.pop(SESSION_KEY_VERIFIED, None)

    # ---- form draft ----------------------------------------------------------

    @property
    def draft(self) -> dict[str, str]:
        return dict(self._store.get(SESSION_KEY_DRAFT) or {})

    def save_draft(self, draft: dict[str, str]) -> None:
        self._store[SESSION_KEY_DRAFT] = draft

    def clear_draft(self) -> None:
        self._store.pop(SESSION_KEY_DRAFT, None)

    # ---- pre-OAuth snapshot --------------------------------------------------

    def save_snapshot(self, snapshot: PreOAuthSnapshot) -> None:
        self._store[PRE_OAUTH_SNAPSHOT_KEY] = snapshot.model_dump(mode="json", by_alias=True)

    def has_snapshot(self) -> bool:
        return PRE_OAUTH_SNAPSHOT_KEY in self._store

    def consume_snapshot(self) -> PreOAuthSnapshot | None:
        """Read and remove the snapshot. Invalid snapshots are dropped."""
        raw = self._store.pop(PRE_OAUTH_SNAPSHOT_KEY, None)
        if raw is None:
            return None
        try:
            return PreOAuthSnapshot.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Discarding invalid pre-OAuth snapshot: {e.error_count()} error(s)")
            return None

    # ---- authenticated user --------------------------------------------------

    @property
    def user(self) -> AuthenticatedUser | None:
        raw = self._store.get(SESSION_KEY_USER)
        if not raw:
            return None
        try:
            return AuthenticatedUser.model_validate(raw)
        except ValidationError:
            # Stale or tampered record, drop it
            self._store.pop(SESSION_KEY_USER, None)
            return None

    def set_user(self, user: AuthenticatedUser) -> None:
        """Install the authenticated user for this browser session.

        Raises UserRecordTooLarge if the record would push the cookie past
        what browsers keep; the stored user is left unchanged in that case.
        """
        record = user.model_dump(mode="json")
        size = len(json.dumps(record, separators=(",", ":")).encode("utf-8"))
        if size > MAX_SESSION_USER_BYTES:
            raise UserRecordTooLarge(size)
        self._store[SESSION_KEY_USER] = record

    def clear_user(self) -> None:
        self._store.pop(SESSION_KEY_USER, None)

    # ---- notifications -------------------------------------------------------

    def flash(self, level: FlashLevel, message: str) -> None:
        flashes = list(self._store.get(SESSION_KEY_FLASHES) or [])
        flashes.append({"level": level, "message": message})
        self._store[SESSION_KEY_FLASHES] = flashes

    def pop_flashes(self) -> list[dict[str, str]]:
        return list(self._store.pop(SESSION_KEY_FLASHES, None) or [])

    # ---- misc ----------------------------------------------------------------

    @property
    def locale(self) -> str | None:
        """Locale chosen for this browser, if any."""
        return self._store.get(SESSION_KEY_LOCALE)

    def reset(self) -> None:
        """Back to the initial phase. The pre-OAuth snapshot is left alone."""
        self.phase = LoginPhase.INITIAL
        self.clear_verified()

    def logout(self) -> None:
        self.clear_user()
        self.clear_draft()
        self.reset()
