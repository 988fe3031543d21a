"""Tests for login flow sequencing."""

from urllib.parse import quote

import pytest

from pullquest.auth.flow import (
    InvalidTransition,
    SubmitStatus,
    begin_oauth,
    decode_user_param,
    go_back,
    resolve_callback,
    submit_credentials,
)
from pullquest.auth.models import CredentialsForm, LoginPhase, LoginResult, PreOAuthSnapshot, Role
from pullquest.auth.session import LoginSession
from pullquest.config import Settings
from pullquest.constants import (
    MAX_USER_PARAM_LENGTH,
    MSG_OAUTH_ERROR,
    MSG_OAUTH_SUCCESS,
    PRE_OAUTH_SNAPSHOT_KEY,
    SESSION_KEY_USER,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(app_secret_key="x" * 40, api_base_url="http://login-api.test")


def maintainer_form(**overrides) -> CredentialsForm:
    values = {"role": "maintainer", "email": "m@x.io", "password": "pw", "github_username": "octocat"}
    values.update(overrides)
    return CredentialsForm(**values)


class TestSubmitCredentials:
    """Tests for submit_credentials."""

    @pytest.mark.asyncio
    async def test_incomplete_form_never_calls_api(self, session_store, fake_login):
        session = LoginSession(session_store)
        outcome = await submit_credentials(session, maintainer_form(github_username=""), fake_login)

        assert outcome.status is SubmitStatus.BLOCKED
        assert outcome.missing == ["github_username"]
        assert fake_login.calls == []
        assert session.phase is LoginPhase.INITIAL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["contributor", "maintainer"])
    async def test_success_enters_oauth_pending(self, session_store, fake_login, role):
        session = LoginSession(session_store)
        outcome = await submit_credentials(session, maintainer_form(role=role), fake_login)

        assert outcome.status is SubmitStatus.OAUTH_PENDING
        assert outcome.redirect_to is None
        assert session.phase is LoginPhase.OAUTH_PENDING
        assert session.verified.role is Role(role)
        assert session.verified.github_username == "octocat"
        assert session.user is None

    @pytest.mark.asyncio
    async def test_company_navigates_without_oauth(self, session_store, fake_login):
        session = LoginSession(session_store)
        fake_login.result = LoginResult(success=True, user={"name": "Acme"})
        form = CredentialsForm(role="company", email="boss@acme.io", password="pw")

        outcome = await submit_credentials(session, form, fake_login)

        assert outcome.status is SubmitStatus.NAVIGATE
        assert outcome.redirect_to == "/company/dashboard"
        assert session.phase is not LoginPhase.OAUTH_PENDING
        assert session.verified is None
        assert session.user.role is Role.COMPANY
        assert session.user.display_name == "Acme"
        assert fake_login.calls[0].github_username is None

    @pytest.mark.asyncio
    async def test_company_with_oversized_backend_record_keeps_identity(self, session_store, fake_login):
        session = LoginSession(session_store)
        fake_login.result = LoginResult(success=True, user={"name": "Acme", "bio": "x" * 5000})
        form = CredentialsForm(role="company", email="boss@acme.io", password="pw")

        outcome = await submit_credentials(session, form, fake_login)

        assert outcome.status is SubmitStatus.NAVIGATE
        assert session_store[SESSION_KEY_USER] == {"role": "company", "email": "boss@acme.io"}

    @pytest.mark.asyncio
    async def test_rejection_keeps_initial_phase(self, session_store, fake_login):
        session = LoginSession(session_store)
        fake_login.result = LoginResult(success=False, error="Wrong password")

        outcome = await submit_credentials(session, maintainer_form(), fake_login)

        assert outcome.status is SubmitStatus.REJECTED
        assert outcome.error == "Wrong password"
        assert session.phase is LoginPhase.INITIAL
        assert session.draft == {"role": "maintainer", "email": "m@x.io", "github_username": "octocat"}

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, session_store, fake_login):
        session = LoginSession(session_store)
        fake_login.result = LoginResult(success=False, error="slow", timed_out=True)

        outcome = await submit_credentials(session, maintainer_form(), fake_login)

        assert outcome.status is SubmitStatus.REJECTED
        assert outcome.timed_out

    @pytest.mark.asyncio
    async def test_resubmit_from_oauth_pending_starts_over(self, session_store, fake_login):
        session = LoginSession(session_store)
        await submit_credentials(session, maintainer_form(), fake_login)
        fake_login.result = LoginResult(success=False, error="nope")

        await submit_credentials(session, maintainer_form(), fake_login)

        assert session.phase is LoginPhase.INITIAL
        assert session.verified is None


class TestOAuthHandoff:
    """Tests for begin_oauth and go_back."""

    @pytest.mark.asyncio
    async def test_begin_oauth_writes_snapshot(self, session_store, fake_login, settings):
        session = LoginSession(session_store)
        await submit_credentials(session, maintainer_form(), fake_login)

        url = begin_oauth(session, settings)

        assert url == "http://login-api.test/auth/github"
        assert session_store[PRE_OAUTH_SNAPSHOT_KEY] == {
            "role": "maintainer",
            "email": "m@x.io",
            "githubUsername": "octocat",
        }

    def test_begin_oauth_requires_pending_phase(self, session_store, settings):
        with pytest.raises(InvalidTransition):
            begin_oauth(LoginSession(session_store), settings)
        assert PRE_OAUTH_SNAPSHOT_KEY not in session_store

    def test_begin_oauth_without_verified_identity(self, session_store, settings):
        session = LoginSession(session_store)
        session.phase = LoginPhase.OAUTH_PENDING
        with pytest.raises(InvalidTransition):
            begin_oauth(session, settings)
        assert session.phase is LoginPhase.INITIAL

    @pytest.mark.asyncio
    async def test_back_discards_verification_but_keeps_snapshot(self, session_store, fake_login, settings):
        session = LoginSession(session_store)
        await submit_credentials(session, maintainer_form(), fake_login)
        begin_oauth(session, settings)

        go_back(session)

        assert session.phase is LoginPhase.INITIAL
        assert session.verified is None
        assert session.has_snapshot()

    def test_back_from_initial_is_noop(self, session_store):
        session = LoginSession(session_store)
        go_back(session)
        assert session.phase is LoginPhase.INITIAL

    def test_back_after_success_is_invalid(self, session_store):
        session = LoginSession(session_store)
        session.phase = LoginPhase.SUCCESS
        with pytest.raises(InvalidTransition):
            go_back(session)


class TestResolveCallback:
    """Tests for resolve_callback."""

    @pytest.mark.parametrize("raw", [None, ""])
    def test_no_param_is_noop(self, session_store, raw):
        assert resolve_callback(LoginSession(session_store), raw) is None
        assert session_store == {}

    def test_installs_user_and_routes_by_role(self, session_store):
        session = LoginSession(session_store)
        # Query string value as received after one round of URL decoding
        outcome = resolve_callback(session, '{"role":"maintainer"}')

        assert outcome.success
        assert outcome.redirect_to == "/maintainer/dashboard"
        assert session_store[SESSION_KEY_USER] == {"role": "maintainer"}
        assert session.phase is LoginPhase.SUCCESS
        assert session.pop_flashes() == [{"level": "success", "message": MSG_OAUTH_SUCCESS}]

    def test_still_encoded_value_is_decoded(self, session_store):
        outcome = resolve_callback(LoginSession(session_store), quote('{"role":"company","id":1}'))
        assert outcome.redirect_to == "/company/dashboard"
        assert session_store[SESSION_KEY_USER]["id"] == 1

    def test_missing_role_defaults_to_contributor(self, session_store):
        outcome = resolve_callback(LoginSession(session_store), '{"login":"octocat"}')
        assert outcome.redirect_to == "/contributor/dashboard"

    def test_snapshot_fills_missing_role_and_is_cleared(self, session_store):
        session = LoginSession(session_store)
        session.save_snapshot(PreOAuthSnapshot(role=Role.MAINTAINER, email="m@x.io", github_username="octocat"))

        outcome = resolve_callback(session, '{"login":"octocat"}')

        assert outcome.redirect_to == "/maintainer/dashboard"
        assert not session.has_snapshot()

    def test_user_role_wins_over_snapshot(self, session_store):
        session = LoginSession(session_store)
        session.save_snapshot(PreOAuthSnapshot(role=Role.MAINTAINER, email="m@x.io"))

        outcome = resolve_callback(session, '{"role":"contributor"}')

        assert outcome.redirect_to == "/contributor/dashboard"
        assert not session.has_snapshot()

    @pytest.mark.parametrize("raw", ["not-valid-json", "[1, 2]", '"maintainer"', '{"role":"admin"}'])
    def test_bad_payload_sends_back_to_login(self, session_store, raw):
        session = LoginSession(session_store)
        session.phase = LoginPhase.OAUTH_PENDING
        session.save_snapshot(PreOAuthSnapshot(role=Role.MAINTAINER, email="m@x.io"))

        outcome = resolve_callback(session, raw)

        assert not outcome.success
        assert outcome.redirect_to == "/login"
        assert SESSION_KEY_USER not in session_store
        assert session.phase is LoginPhase.INITIAL
        assert not session.has_snapshot()
        assert session.pop_flashes() == [{"level": "error", "message": MSG_OAUTH_ERROR}]


def test_decode_user_param_rejects_non_object():
    with pytest.raises(ValueError):
        decode_user_param("42")


class TestCallbackLimits:
    """Callback values the session cookie cannot carry."""

    @pytest.mark.parametrize(
        "raw",
        [
            "[" * 5000,
            '{"a":' + "[" * 5000,
        ],
    )
    def test_deeply_nested_value_sends_back_to_login(self, session_store, raw):
        session = LoginSession(session_store)
        session.phase = LoginPhase.OAUTH_PENDING

        outcome = resolve_callback(session, raw)

        assert not outcome.success
        assert outcome.redirect_to == "/login"
        assert SESSION_KEY_USER not in session_store
        assert session.phase is LoginPhase.INITIAL
        assert session.pop_flashes() == [{"level": "error", "message": MSG_OAUTH_ERROR}]

    def test_overlong_value_is_rejected_before_parsing(self):
        raw = '{"role":"maintainer","bio":"' + "x" * MAX_USER_PARAM_LENGTH + '"}'
        with pytest.raises(ValueError, match="limit"):
            decode_user_param(raw)

    def test_oversized_user_record_is_not_installed(self, session_store):
        session = LoginSession(session_store)
        session.save_snapshot(PreOAuthSnapshot(role=Role.MAINTAINER, email="m@x.io"))
        raw = '{"role":"maintainer","bio":"' + "x" * 5000 + '"}'

        outcome = resolve_callback(session, raw)

        assert not outcome.success
        assert outcome.redirect_to == "/login"
        assert SESSION_KEY_USER not in session_store
        assert not session.has_snapshot()
        assert session.pop_flashes() == [{"level": "error", "message": MSG_OAUTH_ERROR}]

    def test_failed_callback_keeps_existing_user(self, session_store):
        session = LoginSession(session_store)
        resolve_callback(session, '{"role":"company","name":"Acme"}')
        session.pop_flashes()

        outcome = resolve_callback(session, "[" * 5000)

        assert not outcome.success
        assert session_store[SESSION_KEY_USER] == {"role": "company", "name": "Acme"}
