"""
Retry-until-terminal polling for asynchronous CloudFormation operations.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from botocore.exceptions import ClientError

from ..errors import PollTimeoutError, is_not_found

logger = logging.getLogger(__name__)

# Seconds between describe calls
POLL_INTERVAL = 5.0

S = TypeVar("S")


class Outcome(Enum):
    """What a classifier decided about one observed state."""
    CONTINUE = "continue"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Classification:
    """Result of classifying one observed state."""
    outcome: Outcome
    value: Any = None
    error: Optional[BaseException] = None
    message: Optional[str] = None

    @classmethod
    def waiting(cls, message: Optional[str] = None) -> "Classification":
        return cls(Outcome.CONTINUE, message=message)

    @classmethod
    def success(cls, value: Any = None) -> "Classification":
        return cls(Outcome.SUCCESS, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Classification":
        return cls(Outcome.FAILURE, error=error)


async def poll_until_terminal(
    probe: Callable[[], Awaitable[S]],
    classify: Callable[[S], Classification],
    interval: float = POLL_INTERVAL,
    not_found_is_success: bool = False,
    max_attempts: Optional[int] = None,
) -> Any:
    """
    Call probe until classify reports a terminal outcome.

    There is no ceiling on the number of attempts unless max_attempts is
    given; slow stack operations can legitimately take hours.

    Args:
        probe: Coroutine function returning the current remote state
        classify: Maps a state to continue / success(value) / failure(error)
        interval: Seconds to wait between attempts
        not_found_is_success: Resolve with None when the resource is absent
        max_attempts: Optional ceiling; PollTimeoutError when exhausted

    Returns:
        The value carried by the success classification

    Raises:
        The classification's error on failure, and any error from probe
        other than an expected not-found condition.
    """
    attempts = 0
    while True:
        attempts += 1
        try:
            state = await probe()
        except ClientError as e:
            if not_found_is_success and is_not_found(e):
                logger.info("Resource deleted or never existed.")
                return None
            raise

        result = classify(state)
        if result.outcome is Outcome.SUCCESS:
            return result.value
        if result.outcome is Outcome.FAILURE:
            raise result.error

        if max_attempts is not None and attempts >= max_attempts:
            raise PollTimeoutError(attempts, state)

        if result.message:
            logger.info(result.message)
        await asyncio.sleep(interval)
