from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Sequence

from mcs_conformance.clusters.errors import (
    is_internal_error,
    is_server_timeout,
    is_service_unavailable,
    is_timeout,
    is_too_many_requests,
    is_unexpected_server_error,
)

logger = logging.getLogger(__name__)

ErrorPredicate = Callable[[BaseException], bool]


class ErrorClassification(str, Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


# API errors that may resolve without any state change in the system under
# test: the control plane being momentarily overloaded or restarting.
TRANSIENT_ERROR_PREDICATES: tuple[ErrorPredicate, ...] = (
    is_internal_error,
    is_server_timeout,
    is_timeout,
    is_service_unavailable,
    is_unexpected_server_error,
    is_too_many_requests,
)


def classify_error(
    err: BaseException,
    description: str,
    *,
    predicates: Sequence[ErrorPredicate] = TRANSIENT_ERROR_PREDICATES,
) -> ErrorClassification:
    """Classify an operation error as transient (retry) or fatal (stop).

    Everything that is not one of the recognized transient API conditions is
    fatal, including not-found errors and assertion failures.
    """
    if any(pred(err) for pred in predicates):
        logger.warning("Transient failure when attempting to %s: %s", description, err)
        return ErrorClassification.TRANSIENT
    return ErrorClassification.FATAL


def is_transient_error(
    err: BaseException,
    description: str,
    *,
    predicates: Sequence[ErrorPredicate] = TRANSIENT_ERROR_PREDICATES,
) -> bool:
    return classify_error(err, description, predicates=predicates) is ErrorClassification.TRANSIENT
