"""Retry strategies for transient failures."""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import CredentialStoreError, NetworkError

logger = logging.getLogger(__name__)


def get_storage_retry(attempts: int = 3):
    """
    Get retry strategy for credential store reads.

    The durable store may be briefly unavailable right after process start.

    Args:
        attempts: Maximum number of attempts

    Returns:
        Retry decorator configured for credential store errors
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(CredentialStoreError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def get_network_retry(attempts: int = 3):
    """
    Get retry strategy for calls that failed without an HTTP response.

    Only ``NetworkError`` is retried: a server rejection is final.

    Args:
        attempts: Maximum number of attempts

    Returns:
        Retry decorator configured for network errors
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(NetworkError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
