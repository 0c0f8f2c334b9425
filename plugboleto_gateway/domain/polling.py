"""Poll-until-ready primitive shared by the asynchronous PlugBoleto flows"""

import logging
import time
from typing import Callable, Optional, Protocol, TypeVar

from plugboleto_gateway.domain.models import AsyncOperation, OperationStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Clock(Protocol):
    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Blocks the calling thread; swapped for a fake clock in tests"""

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


def poll_until_ready(
    query: Callable[[], T],
    is_done: Callable[[T], bool],
    interval: float,
    max_attempts: int,
    clock: Optional[Clock] = None,
    delay_first: bool = False,
    on_attempt: Optional[Callable[[T], None]] = None,
) -> T:
    """
    Query until `is_done` holds or the attempt budget runs out.

    Strategy:
    - `query` runs at least once; every attempt counts against `max_attempts`
    - `interval` seconds pass between attempts (and before the first one when
      `delay_first` is set, for services that need time before the first read)
    - Exhausting the budget is not an error: the last result is returned and
      the caller decides whether that is fatal
    - Exceptions raised by `query` propagate immediately, they are never retried

    Args:
        query: Performs one round trip and returns its result
        is_done: Decides whether a result is final
        interval: Seconds to wait between attempts
        max_attempts: Maximum number of `query` calls (at least 1)
        clock: Sleep provider (default: SystemClock)
        delay_first: Wait `interval` before the first query too
        on_attempt: Called with every result, before `is_done` is evaluated

    Returns:
        The last result obtained
    """
    clock = clock or SystemClock()
    attempts = 0

    while True:
        if attempts > 0 or delay_first:
            clock.sleep(interval)

        result = query()
        attempts += 1
        if on_attempt is not None:
            on_attempt(result)

        if is_done(result):
            return result

        if attempts >= max(max_attempts, 1):
            logger.warning(
                "Polling budget exhausted",
                extra={"attempts": attempts, "interval_seconds": interval},
            )
            return result


def track_operation(
    operation: AsyncOperation,
    query: Callable[[], T],
    status_of: Callable[[T], OperationStatus],
    clock: Optional[Clock] = None,
    delay_first: bool = True,
) -> T:
    """Poll an AsyncOperation until it leaves `processing`, recording attempts and status on it"""

    def record(result: T) -> None:
        operation.attempts += 1
        operation.status = status_of(result)

    return poll_until_ready(
        query,
        lambda result: status_of(result) is not OperationStatus.PROCESSING,
        interval=operation.poll_interval,
        max_attempts=operation.max_attempts,
        clock=clock,
        delay_first=delay_first,
        on_attempt=record,
    )
