import logging
from typing import Callable, TypeVar

from tenacity import Retrying, stop_after_attempt

from config import MAX_RETRIES

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_failed_attempt(retry_state):
    logger.error(f"Attempt {retry_state.attempt_number} failed: {retry_state.outcome.exception()!r}")


def run_with_retry(operation: Callable[[], T], max_attempts: int = MAX_RETRIES) -> T:
    """
    Call ``operation`` until it succeeds, at most ``max_attempts`` times.

    No delay between attempts. The error from the last attempt is re-raised
    as-is once the attempts are used up.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        after=_log_failed_attempt,
        reraise=True,
    )
    return retrying(operation)
