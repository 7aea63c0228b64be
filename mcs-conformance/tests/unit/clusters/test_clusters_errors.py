from __future__ import annotations

from mcs_conformance.clusters.errors import (
    CAUSE_UNEXPECTED_SERVER_RESPONSE,
    ApiError,
    is_already_exists,
    is_conflict,
    is_not_found,
    is_server_timeout,
    is_unexpected_server_error,
)


def test_errors_from_status_body() -> None:
    body = {
        "kind": "Status",
        "apiVersion": "v1",
        "status": "Failure",
        "message": 'serviceimports.multicluster.x-k8s.io "hello" not found',
        "reason": "NotFound",
        "details": {"name": "hello", "causes": [{"type": "FieldValueInvalid"}]},
        "code": 404,
    }
    err = ApiError.from_status(404, body)
    assert err.status_code == 404
    assert err.reason == "NotFound"
    assert str(err) == 'serviceimports.multicluster.x-k8s.io "hello" not found'
    assert err.causes == [{"type": "FieldValueInvalid"}]
    assert is_not_found(err)
    assert not is_unexpected_server_error(err)


def test_errors_non_status_body_is_unexpected_response() -> None:
    err = ApiError.from_status(502, "<html>bad gateway</html>")
    assert err.status_code == 502
    assert err.reason == ""
    assert str(err) == "<html>bad gateway</html>"
    assert err.causes[0]["type"] == CAUSE_UNEXPECTED_SERVER_RESPONSE
    assert is_unexpected_server_error(err)

    empty = ApiError.from_status(500, None)
    assert "unexpected response (HTTP 500)" in str(empty)


def test_errors_reason_wins_over_code() -> None:
    # A known reason is authoritative even when the code would match another predicate.
    assert not is_not_found(ApiError(status_code=404, reason="Forbidden"))
    assert is_already_exists(ApiError(status_code=409, reason="AlreadyExists"))
    assert not is_conflict(ApiError(status_code=409, reason="AlreadyExists"))


def test_errors_unknown_reason_falls_back_to_code() -> None:
    assert is_not_found(ApiError(status_code=404, reason="SomethingNew"))
    assert is_not_found(ApiError(status_code=404))
    assert is_conflict(ApiError(status_code=409, reason=""))


def test_errors_server_timeout_has_no_code_fallback() -> None:
    assert is_server_timeout(ApiError(status_code=500, reason="ServerTimeout"))
    assert not is_server_timeout(ApiError(status_code=504))


def test_errors_predicates_ignore_other_exceptions() -> None:
    assert not is_not_found(KeyError("hello"))
    assert not is_unexpected_server_error(ValueError("x"))


def test_errors_str_forms() -> None:
    assert str(ApiError(status_code=403, reason="Forbidden")) == "Forbidden (HTTP 403)"
    assert str(ApiError(status_code=418)) == "HTTP 418"
