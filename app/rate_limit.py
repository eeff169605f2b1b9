"""Per-client rate limiting for the unauthenticated account endpoints."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

# Route limits register on this instance at import; counters are shared by
# every app in the process, the on/off switch is read from each app's settings.
limiter = Limiter(key_func=get_remote_address)


def rate_limits_disabled(request: Request) -> bool:
    """Exempt every request when the serving app was built with rate limiting off."""
    return not request.app.state.settings.RATE_LIMIT_ENABLED
