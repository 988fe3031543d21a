"""Application constants - centralized configuration values."""

# =============================================================================
# Routes
# =============================================================================
LOGIN_PATH = "/login"
SIGNUP_PATH = "/signUp"
DASHBOARD_PATH_TEMPLATE = "/{role}/dashboard"

# Query parameter carrying the URL-encoded JSON user on return from OAuth
OAUTH_USER_PARAM = "user"

# =============================================================================
# API Timeouts (in seconds)
# =============================================================================
HTTPX_TIMEOUT = 10.0
HEALTH_CHECK_TIMEOUT = 2.0

# =============================================================================
# Session & Security
# =============================================================================
SESSION_TIMEOUT_DAYS = 7
SESSION_COOKIE_NAME = "pullquest_session"

# Session keys (only pullquest.auth.session reads or writes these)
SESSION_KEY_PHASE = "login_phase"
SESSION_KEY_VERIFIED = "verified_identity"
SESSION_KEY_DRAFT = "login_draft"
SESSION_KEY_USER = "user"
SESSION_KEY_FLASHES = "flashes"
SESSION_KEY_LOCALE = "locale"

# Pre-OAuth snapshot written before leaving for GitHub
PRE_OAUTH_SNAPSHOT_KEY = "preOAuthUser"

# =============================================================================
# Messages
# =============================================================================
MSG_LOGIN_TIMEOUT = "The login service took too long to respond. Please try again."
MSG_LOGIN_UNREACHABLE = "Could not reach the login service. Please try again."
MSG_LOGIN_FAILED = "Login failed. Please check your details and try again."
MSG_OAUTH_SUCCESS = "Login successful! Redirecting…"
MSG_OAUTH_ERROR = "Login error. Please try again."

# =============================================================================
# Callback limits
# =============================================================================
# Longest ?user= value accepted before parsing
MAX_USER_PARAM_LENGTH = 8192
# Serialized user record kept in the session cookie; browsers drop cookies
# past ~4 KB and the cookie is base64 encoded and signed
MAX_SESSION_USER_BYTES = 2048
