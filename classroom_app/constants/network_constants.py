"""Network configuration constants for the classroom application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
CURRENT_USER_HEADER: str = "X-User-Id"
CURRENT_ROLE_HEADER: str = "X-User-Role"
