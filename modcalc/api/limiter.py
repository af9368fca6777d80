"""Per-IP request rate limiting shared by the app and its routes."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from modcalc.core.config import get_settings


def rate_limit_value() -> str:
    """Current limit string, e.g. "30/minute"."""
    return get_settings().rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)
