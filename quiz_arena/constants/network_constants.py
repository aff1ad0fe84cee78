"""Network configuration constants for the quiz server."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
USER_HEADER: str = "X-Quiz-User"
ROLE_HEADER: str = "X-Quiz-Role"
