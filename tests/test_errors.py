"""Tests for failure classification."""

import httpx

from quickqr_client.domain.outcomes import Failure, FailureKind
from quickqr_client.domain.qr import PayloadError
from quickqr_client.services.errors import (
    classify_conflict,
    classify_error,
    status_code_of,
)
from tests.conftest import http_error, network_error


def test_status_codes_map_to_kinds() -> None:
    assert classify_error(http_error(401)).kind is FailureKind.AUTH_REJECTED
    assert classify_error(http_error(404)).kind is FailureKind.NOT_FOUND
    assert classify_error(http_error(409)).kind is FailureKind.CONFLICT
    assert classify_error(http_error(422)).kind is FailureKind.VALIDATION_ERROR
    assert classify_error(http_error(503)).kind is FailureKind.INTERNAL_ERROR


def test_backend_message_is_preferred() -> None:
    failure = classify_error(http_error(422, {"detail": "name too long"}))

    assert failure.message == "name too long"
    assert failure.status_code == 422


def test_transport_and_payload_errors() -> None:
    timeout = httpx.ReadTimeout("slow")

    assert classify_error(network_error()).kind is FailureKind.NETWORK_ERROR
    assert classify_error(timeout).kind is FailureKind.NETWORK_ERROR
    assert classify_error(PayloadError("bad")).kind is FailureKind.INTERNAL_ERROR


def test_ambiguous_conflict_stays_generic() -> None:
    failure = Failure(kind=FailureKind.CONFLICT, message="Username or email in use")

    assert classify_conflict(failure) is failure


def test_status_code_of() -> None:
    assert status_code_of(http_error(500)) == "500"
    assert status_code_of(network_error()) == "n/a"
