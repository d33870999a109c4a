"""HTTP session factory with connection pooling, timeouts and retries.

Pattern: requests.Session with a urllib3 retry adapter for gateway errors and
a tenacity wrapper for connection-level failures.

Only GET is retried. POST and PUT create or change state on the backend
(patients, OTPs, appointments), so a lost response must surface to the user
instead of being replayed.
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

RETRY_STATUSES = [502, 503, 504]


def create_http_session(
    max_retries: int = 2,
    backoff_factor: float = 0.5,
    timeout: float = 15
) -> requests.Session:
    """
    Create HTTP session with retry and connection pooling.

    Args:
        max_retries: Retry attempts for GET requests (default: 2)
        backoff_factor: Backoff multiplier; delays grow as factor * 2^n, capped at 8s
        timeout: Request timeout in seconds, applied to every method (default: 15)

    Returns:
        Configured requests.Session
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["GET"],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    original_get = session.get
    original_post = session.post
    original_put = session.put

    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_factor, max=8),
        retry=retry_if_exception_type((
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
        )),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def get_with_retry(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        return original_get(*args, **kwargs)

    def post_with_timeout(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        return original_post(*args, **kwargs)

    def put_with_timeout(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        return original_put(*args, **kwargs)

    session.get = get_with_retry
    session.post = post_with_timeout
    session.put = put_with_timeout

    return session
