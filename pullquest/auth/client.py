"""Client for the backend login API."""

import asyncio
import logging
from typing import Any

import httpx

from pullquest.auth.models import LoginResult, PendingCredentials
from pullquest.config import Settings, get_settings
from pullquest.constants import (
    HTTPX_TIMEOUT,
    MSG_LOGIN_FAILED,
    MSG_LOGIN_TIMEOUT,
    MSG_LOGIN_UNREACHABLE,
)
from pullquest.utils.logging import LogContext

logger = logging.getLogger(__name__)

# Connection pool limits
_POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)

_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    """Get the persistent httpx client used for backend API calls."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=HTTPX_TIMEOUT,
            limits=_POOL_LIMITS,
            http2=False,
        )
    return _http_client


async def close_http_client() -> None:
    """Close the persistent httpx client. Call during app shutdown."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def _error_from_body(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class LoginClient:
    """Verifies role, email and password against ``POST {api}/auth/login``.

    Every call is bounded by ``timeout`` seconds. There is no automatic retry:
    a failed or timed-out login is reported back so the user can resubmit.
    """

    def __init__(
        self,
        url: str,
        timeout: float,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = http_client

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient | None = None) -> "LoginClient":
        return cls(settings.login_api_url, settings.login_timeout_seconds, http_client)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    async def login(self, credentials: PendingCredentials) -> LoginResult:
        log = LogContext(logger, role=credentials.role.value, email=credentials.email)
        try:
            response = await asyncio.wait_for(
                self.client.post(
                    self.url,
                    json=credentials.to_payload(),
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                ),
                # Outer guard in case the transport ignores its own timeout
                timeout=self.timeout + 1,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            log.warning(f"Login API timed out after {self.timeout:.1f}s")
            return LoginResult(success=False, error=MSG_LOGIN_TIMEOUT, timed_out=True)
        except httpx.HTTPError as e:
            log.error(f"Login API request failed: {type(e).__name__}: {e}")
            return LoginResult(success=False, error=MSG_LOGIN_UNREACHABLE)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            error = _error_from_body(body) or f"{MSG_LOGIN_FAILED} (HTTP {response.status_code})"
            log.info(f"Login rejected with status {response.status_code}")
            return LoginResult(success=False, error=error)

        user = body.get("user") if isinstance(body, dict) else None
        user = user if isinstance(user, dict) else None

        if isinstance(body, dict) and "success" in body:
            success = bool(body["success"])
            if not success:
                log.info("Login API answered success=false")
                return LoginResult(success=False, error=_error_from_body(body) or MSG_LOGIN_FAILED)
            log.info("Login API answered success=true")
            return LoginResult(success=True, user=user)

        log.info("Login API answered without a success flag, treating 2xx as success")
        return LoginResult(success=True, user=user)


def get_login_client() -> LoginClient:
    """FastAPI dependency returning a client bound to the current settings."""
    return LoginClient.from_settings(get_settings())
