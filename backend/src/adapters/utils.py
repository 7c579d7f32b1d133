"""Shared utilities for adapter implementations."""

import logging
import time
from typing import Callable, TypeVar

import requests

from errors import UpstreamServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF = 0.5


def create_session_with_pooling(
    pool_connections: int = 10,
    pool_maxsize: int = 20,
    max_retries: int = 0,
) -> requests.Session:
    """Create a requests Session with connection pooling.

    Args:
        pool_connections: Number of connection pools to cache.
        pool_maxsize: Maximum number of connections to save per pool.
        max_retries: Connection-level retries. Request-level retry is done
            by ``retry_call`` at the call sites that allow it.

    Returns:
        Configured requests Session.
    """
    session = requests.Session()
    adapter = requests.adapters.HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=max_retries,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def retry_call(
    fn: Callable[[], T],
    attempts: int = DEFAULT_RETRY_ATTEMPTS,
    backoff: float = DEFAULT_RETRY_BACKOFF,
    retry_on: tuple[type[BaseException], ...] = (UpstreamServiceError,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` up to ``attempts`` times with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; the last one is
    re-raised once attempts are exhausted.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as e:
            if attempt == attempts:
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                f"Attempt {attempt}/{attempts} failed: {e}. Retrying in {delay:.2f}s"
            )
            sleep(delay)
    raise AssertionError("unreachable")
