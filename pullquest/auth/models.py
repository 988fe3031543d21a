"""Authentication-related Pydantic models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pullquest.constants import DASHBOARD_PATH_TEMPLATE


class Role(str, Enum):
    """Account category, decides required fields and post-login destination."""

    CONTRIBUTOR = "contributor"
    MAINTAINER = "maintainer"
    COMPANY = "company"

    @property
    def requires_github(self) -> bool:
        """Contributors and maintainers must link a GitHub account."""
        return self in (Role.CONTRIBUTOR, Role.MAINTAINER)

    @property
    def dashboard_path(self) -> str:
        return DASHBOARD_PATH_TEMPLATE.format(role=self.value)

    @classmethod
    def parse(cls, value: str | None) -> "Role | None":
        """Return the role for a raw form value, or None if missing/unknown."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class LoginPhase(str, Enum):
    """Where the browser is in the two-step login."""

    INITIAL = "initial"
    OAUTH_PENDING = "oauth_pending"
    SUCCESS = "success"


class CredentialsForm(BaseModel):
    """Raw values from the login form, possibly incomplete."""

    role: str | None = None
    email: str = ""
    password: str = ""
    github_username: str = ""

    @property
    def parsed_role(self) -> Role | None:
        return Role.parse(self.role)

    def missing_fields(self) -> list[str]:
        """Required-for-role fields that are still empty."""
        missing = []
        role = self.parsed_role
        if role is None:
            missing.append("role")
        if role is not None and role.requires_github and not self.github_username.strip():
            missing.append("github_username")
        if not self.email.strip():
            missing.append("email")
        if not self.password:
            missing.append("password")
        return missing

    @property
    def can_submit(self) -> bool:
        return not self.missing_fields()

    def to_credentials(self) -> "PendingCredentials":
        """Build the login payload. Call only when can_submit is true."""
        role = self.parsed_role
        if role is None or not self.can_submit:
            raise ValueError(f"Incomplete credentials: {', '.join(self.missing_fields())}")
        return PendingCredentials(
            role=role,
            email=self.email.strip(),
            password=self.password,
            github_username=self.github_username.strip() if role.requires_github else None,
        )

    def draft(self) -> dict[str, str]:
        """Form values safe to keep in the session (no password)."""
        return {
            "role": self.role or "",
            "email": self.email,
            "github_username": self.github_username,
        }


class PendingCredentials(BaseModel):
    """Validated credentials sent to the login API."""

    role: Role
    email: str
    password: str = Field(repr=False)
    github_username: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {
            "role": self.role.value,
            "email": self.email,
            "password": self.password,
        }
        if self.role.requires_github and self.github_username:
            payload["githubUsername"] = self.github_username
        return payload


class LoginResult(BaseModel):
    """Outcome of the login API call."""

    success: bool
    error: str | None = None
    timed_out: bool = False
    # User record the backend may return alongside a successful check
    user: dict[str, Any] | None = None


class PreOAuthSnapshot(BaseModel):
    """Identity saved before leaving for GitHub, consumed on return."""

    model_config = ConfigDict(populate_by_name=True)

    role: Role
    email: str
    github_username: str | None = Field(default=None, alias="githubUsername")


class AuthenticatedUser(BaseModel):
    """User record returned by the OAuth callback.

    The backend owns the shape; only ``role`` is interpreted here and
    everything else is kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    role: Role | None = None

    @property
    def dashboard_path(self) -> str:
        return (self.role or Role.CONTRIBUTOR).dashboard_path

    @property
    def display_name(self) -> str:
        extra = self.model_extra or {}
        for key in ("name", "githubUsername", "login", "username", "email"):
            value = extra.get(key)
            if value:
                return str(value)
        return "GitHub user"
