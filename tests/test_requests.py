"""Tests for caller-side request checks."""

import pytest

from quickqr_client.domain.outcomes import Failure, FailureKind
from quickqr_client.services.requests import (
    DEFAULT_QR_NAME,
    QRRequest,
    prepare_qr_request,
    validate_registration,
)


def test_registration_checks() -> None:
    assert validate_registration("bob", "bob@x.test", "secret1", "secret1") is None

    mismatch = validate_registration("bob", "bob@x.test", "secret1", "secret2")
    short = validate_registration("bob", "bob@x.test", "abc", "abc")
    blank = validate_registration(" ", "bob@x.test", "secret1", "secret1")

    assert mismatch.message == "Passwords do not match"
    assert short.message == "Password must be at least 6 characters"
    assert blank.kind is FailureKind.VALIDATION_ERROR


def test_prepare_qr_request_defaults_name() -> None:
    prepared = prepare_qr_request("  https://example.com/page ", "   ")

    assert prepared == QRRequest(url="https://example.com/page", name=DEFAULT_QR_NAME)


@pytest.mark.parametrize("url", ["", "   ", "example", "/relative/path"])
def test_prepare_qr_request_rejects_bad_urls(url: str) -> None:
    prepared = prepare_qr_request(url, "Name")

    assert isinstance(prepared, Failure)
    assert prepared.kind is FailureKind.VALIDATION_ERROR
