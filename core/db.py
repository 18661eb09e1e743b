# core/db.py
"""
Store-boundary helpers.

Lock waits and busy-database errors surface from the driver as
OperationalError; engine callers see them as the retryable StoreTimeout.
"""
import functools
import logging

from django.db import OperationalError

from .exceptions import StoreTimeout

logger = logging.getLogger("neighborly.core.db")


def store_operation(func):
    """Translate driver timeouts raised by ``func`` into ``StoreTimeout``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OperationalError as exc:
            logger.warning(f"Store operation {func.__qualname__} failed: {exc}")
            raise StoreTimeout() from exc

    return wrapper
