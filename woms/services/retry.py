"""Single automatic retry for operations that lost a conditional-write race."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from woms.errors import Conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_on_conflict(operation: Callable[[], Awaitable[T]]) -> T:
    """
    Run ``operation``; if it raises Conflict, run it once more. The second
    attempt re-reads state, so it normally ends in a definitive answer
    (success, InvalidTransition, AlreadyConverted). A second Conflict propagates.
    """
    try:
        return await operation()
    except Conflict:
        logger.info("Retrying operation once after conflict")
        return await operation()
