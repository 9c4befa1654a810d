"""Caller-side checks run before a request reaches the stores."""

from dataclasses import dataclass

import httpx

from quickqr_client.domain.outcomes import Failure
from quickqr_client.services.errors import validation_failure

MIN_PASSWORD_LENGTH = 6
DEFAULT_QR_NAME = "Untitled QR Code"


@dataclass(frozen=True)
class QRRequest:
    """A checked request to generate a QR code."""

    url: str
    name: str


def validate_registration(
    username: str, email: str, password: str, confirmation: str
) -> Failure | None:
    """Return a validation failure for the sign-up form, or ``None``."""
    if not username.strip() or not email.strip():
        return validation_failure("Username and email are required")
    if password != confirmation:
        return validation_failure("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        return validation_failure(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return None


def prepare_qr_request(url: str, name: str | None = None) -> QRRequest | Failure:
    """Trim and check a generate request, applying the default name."""
    cleaned_url = url.strip()
    if not cleaned_url:
        return validation_failure("Please enter a URL")
    try:
        parsed = httpx.URL(cleaned_url)
    except httpx.InvalidURL:
        return validation_failure("Please enter a valid URL")
    if not parsed.scheme or not parsed.host:
        return validation_failure("Please enter a valid URL")
    cleaned_name = (name or "").strip() or DEFAULT_QR_NAME
    return QRRequest(url=cleaned_url, name=cleaned_name)
