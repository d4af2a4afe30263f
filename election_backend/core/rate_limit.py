"""
Shared slowapi limiter.

Routes decorate with `@limiter.limit(...)`; main.py attaches the same
instance to `app.state.limiter`. RATE_LIMIT_ENABLED=false disables it.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from election_backend.config.settings import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
