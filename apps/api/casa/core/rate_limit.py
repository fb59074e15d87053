"""Rate limiting configuration for the CASA API."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from casa.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=not IS_TESTING,
)


def auth_limit() -> str:
    """Login attempts per minute, read at request time."""
    return f"{settings.RATE_LIMIT_AUTH}/minute"
