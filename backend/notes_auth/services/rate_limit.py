from slowapi import Limiter
from slowapi.util import get_remote_address

from notes_auth.config import Settings

AUTH_LIMIT = "5/minute; 50/day"
VERIFY_LIMIT = "10/minute; 100/day"


def build_limiter(settings: Settings) -> Limiter:
    """One limiter per app; its counters live in the configured storage."""
    return Limiter(
        key_func=get_remote_address,
        default_limits=[],
        storage_uri=settings.rate_limit_storage_uri,
        enabled=settings.rate_limit_enabled,
    )
