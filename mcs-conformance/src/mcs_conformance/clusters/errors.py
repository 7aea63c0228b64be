"""Resource API errors.

`ApiError` mirrors the Kubernetes `Status` object returned by the API server.
The predicates below follow apimachinery's semantics: a predicate matches on
the Status `reason`; when the reason is empty or unknown it falls back to the
HTTP status code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

REASON_NOT_FOUND = "NotFound"
REASON_ALREADY_EXISTS = "AlreadyExists"
REASON_CONFLICT = "Conflict"
REASON_INTERNAL_ERROR = "InternalError"
REASON_SERVER_TIMEOUT = "ServerTimeout"
REASON_TIMEOUT = "Timeout"
REASON_SERVICE_UNAVAILABLE = "ServiceUnavailable"
REASON_TOO_MANY_REQUESTS = "TooManyRequests"

CAUSE_UNEXPECTED_SERVER_RESPONSE = "UnexpectedServerResponse"

_KNOWN_REASONS = {
    REASON_NOT_FOUND,
    REASON_ALREADY_EXISTS,
    REASON_CONFLICT,
    REASON_INTERNAL_ERROR,
    REASON_SERVER_TIMEOUT,
    REASON_TIMEOUT,
    REASON_SERVICE_UNAVAILABLE,
    REASON_TOO_MANY_REQUESTS,
    "Unauthorized",
    "Forbidden",
    "Gone",
    "Invalid",
    "BadRequest",
    "MethodNotAllowed",
    "NotAcceptable",
    "RequestEntityTooLarge",
    "UnsupportedMediaType",
    "Expired",
}


_REASON_FOR_CODE = {
    404: REASON_NOT_FOUND,
    409: REASON_CONFLICT,
    429: REASON_TOO_MANY_REQUESTS,
    500: REASON_INTERNAL_ERROR,
    503: REASON_SERVICE_UNAVAILABLE,
    504: REASON_TIMEOUT,
}


@dataclass(eq=False)
class ApiError(Exception):
    status_code: int
    reason: str = ""
    message: str = ""
    causes: Sequence[Mapping[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self.message or self.reason or f"HTTP {self.status_code}")

    def __str__(self) -> str:
        if self.message:
            return self.message
        if self.reason:
            return f"{self.reason} (HTTP {self.status_code})"
        return f"HTTP {self.status_code}"

    @classmethod
    def from_status(cls, status_code: int, body: Any) -> "ApiError":
        """Build an ApiError from a decoded Status body.

        Anything that is not a Status object is an unexpected server response:
        the reason is derived from the status code and the error carries an
        `UnexpectedServerResponse` cause.
        """
        if not isinstance(body, Mapping) or body.get("kind") != "Status":
            text = body.strip() if isinstance(body, str) else ""
            code = int(status_code)
            return cls(
                status_code=code,
                reason=_REASON_FOR_CODE.get(code, ""),
                message=text or f"the server returned an unexpected response (HTTP {code})",
                causes=[{"type": CAUSE_UNEXPECTED_SERVER_RESPONSE, "message": text}],
            )
        details = body.get("details")
        causes = details.get("causes") if isinstance(details, Mapping) else None
        return cls(
            status_code=int(body.get("code") or status_code),
            reason=str(body.get("reason") or ""),
            message=str(body.get("message") or ""),
            causes=list(causes) if isinstance(causes, list) else [],
        )


def _reason_and_code(err: BaseException) -> tuple[Optional[str], Optional[int]]:
    if not isinstance(err, ApiError):
        return None, None
    return err.reason, err.status_code


def _matches(err: BaseException, reason: str, code: int) -> bool:
    actual_reason, actual_code = _reason_and_code(err)
    if actual_reason is None:
        return False
    if actual_reason == reason:
        return True
    return actual_reason not in _KNOWN_REASONS and actual_code == code


def is_not_found(err: BaseException) -> bool:
    return _matches(err, REASON_NOT_FOUND, 404)


def is_already_exists(err: BaseException) -> bool:
    return _matches(err, REASON_ALREADY_EXISTS, 409)


def is_conflict(err: BaseException) -> bool:
    return _matches(err, REASON_CONFLICT, 409)


def is_internal_error(err: BaseException) -> bool:
    return _matches(err, REASON_INTERNAL_ERROR, 500)


def is_server_timeout(err: BaseException) -> bool:
    # ServerTimeout has no dedicated status code.
    actual_reason, _ = _reason_and_code(err)
    return actual_reason == REASON_SERVER_TIMEOUT


def is_timeout(err: BaseException) -> bool:
    return _matches(err, REASON_TIMEOUT, 504)


def is_service_unavailable(err: BaseException) -> bool:
    return _matches(err, REASON_SERVICE_UNAVAILABLE, 503)


def is_too_many_requests(err: BaseException) -> bool:
    return _matches(err, REASON_TOO_MANY_REQUESTS, 429)


def is_unexpected_server_error(err: BaseException) -> bool:
    if not isinstance(err, ApiError):
        return False
    return any(
        isinstance(c, Mapping) and c.get("type") == CAUSE_UNEXPECTED_SERVER_RESPONSE
        for c in err.causes
    )
