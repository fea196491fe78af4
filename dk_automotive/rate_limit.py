"""Rate limiting global / Global rate limiter.

Utilise slowapi pour limiter les requetes par IP (login, inscription).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from dk_automotive.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
