"""Retry-until-condition engine.

Tests await convergence of eventually consistent cluster state through
`await_until`. Each call runs on the calling thread and blocks it; the only
cancellation is the deadline, and an in-flight operation is allowed to finish
before the poller returns.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, Tuple, TypeVar

from mcs_conformance.errors import AwaitTimeoutError, ConsistencyError, FatalOperationError
from mcs_conformance.framework.classifier import (
    TRANSIENT_ERROR_PREDICATES,
    ErrorClassification,
    ErrorPredicate,
    classify_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], T]
CheckFn = Callable[[T], Tuple[bool, str]]


@dataclass(frozen=True)
class PollSpec:
    interval: float = 0.5
    deadline: float = 10.0
    immediate: bool = True

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError("interval must be > 0")


DEFAULT_POLL = PollSpec()


@dataclass(frozen=True)
class PollResult(Generic[T]):
    result: Optional[T]
    attempts: int
    elapsed: float
    error: Optional[BaseException] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def always(_: object) -> Tuple[bool, str]:
    return True, ""


def poll_until(
    description: str,
    operation: Operation[T],
    check: CheckFn[T] = always,
    poll: PollSpec = DEFAULT_POLL,
    *,
    predicates: Sequence[ErrorPredicate] = TRANSIENT_ERROR_PREDICATES,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollResult[T]:
    """Call `operation` until `check` accepts its result or the deadline passes.

    Never raises for operation errors or timeouts; those are reported through
    `PollResult.error`. Exceptions raised by `check` propagate unchanged.
    """
    start = clock()
    deadline_at = start + poll.deadline
    attempts = 0
    last_message = ""

    if not poll.immediate:
        sleep(poll.interval)

    while True:
        attempts += 1
        try:
            result = operation()
        except Exception as e:
            if classify_error(e, description, predicates=predicates) is ErrorClassification.FATAL:
                fatal = FatalOperationError(description, e)
                fatal.__cause__ = e
                return PollResult(
                    result=None,
                    attempts=attempts,
                    elapsed=clock() - start,
                    error=fatal,
                    message=last_message,
                )
        else:
            ok, msg = check(result)
            if ok:
                return PollResult(result=result, attempts=attempts, elapsed=clock() - start)
            last_message = msg

        remaining = deadline_at - clock()
        if remaining <= 0:
            break
        sleep(min(poll.interval, remaining))

    logger.debug("gave up waiting to %s after %d attempt(s)", description, attempts)
    return PollResult(
        result=None,
        attempts=attempts,
        elapsed=clock() - start,
        error=AwaitTimeoutError(description, last_message),
        message=last_message,
    )


def await_until(
    description: str,
    operation: Operation[T],
    check: CheckFn[T] = always,
    poll: PollSpec = DEFAULT_POLL,
    **kwargs,
) -> T:
    """Like `poll_until` but returns the accepted result or raises the error.

    Raises `FatalOperationError` (fail fast, one attempt) or
    `AwaitTimeoutError` whose text carries the check's last diagnostic.
    """
    outcome = poll_until(description, operation, check, poll, **kwargs)
    if outcome.error is not None:
        raise outcome.error
    return outcome.result  # type: ignore[return-value]


def hold_until(
    description: str,
    operation: Operation[T],
    check: CheckFn[T],
    poll: PollSpec,
    *,
    predicates: Sequence[ErrorPredicate] = TRANSIENT_ERROR_PREDICATES,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Require `check` to accept every result observed until the deadline.

    Transient operation errors are skipped. At least one result must be
    observed, otherwise the condition is reported as never verified.
    """
    deadline_at = clock() + poll.deadline
    attempts = 0
    last: Optional[T] = None
    observed = False

    if not poll.immediate:
        sleep(poll.interval)

    while True:
        attempts += 1
        try:
            result = operation()
        except Exception as e:
            if classify_error(e, description, predicates=predicates) is ErrorClassification.FATAL:
                raise FatalOperationError(description, e) from e
        else:
            ok, msg = check(result)
            if not ok:
                raise ConsistencyError(description, msg, attempt=attempts)
            last = result
            observed = True

        remaining = deadline_at - clock()
        if remaining <= 0:
            break
        sleep(min(poll.interval, remaining))

    if not observed:
        raise AwaitTimeoutError(description, "no successful observation before the deadline")
    return last  # type: ignore[return-value]
