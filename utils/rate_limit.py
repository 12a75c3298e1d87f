"""Shared slowapi limiter, keyed on client address."""
from slowapi import Limiter
from slowapi.util import get_remote_address

import config

limiter = Limiter(key_func=get_remote_address)


def upload_rate_limit() -> str:
    # Read per request so UPLOAD_RATE_LIMIT can change without re-decorating routes
    return config.UPLOAD_RATE_LIMIT
