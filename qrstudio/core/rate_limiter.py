"""Request rate limiting (slowapi)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from qrstudio.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
    storage_uri="memory://",
)
