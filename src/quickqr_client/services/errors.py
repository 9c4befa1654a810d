"""Mapping of adapter exceptions onto the client failure taxonomy."""

import httpx

from quickqr_client.domain.outcomes import Failure, FailureKind

# Exceptions the stores translate into failures instead of letting them escape.
EXPECTED_ERRORS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    httpx.InvalidURL,
    ValueError,
    KeyError,
    TypeError,
)

_STATUS_KINDS = {
    400: FailureKind.VALIDATION_ERROR,
    401: FailureKind.AUTH_REJECTED,
    403: FailureKind.AUTH_REJECTED,
    404: FailureKind.NOT_FOUND,
    409: FailureKind.CONFLICT,
    422: FailureKind.VALIDATION_ERROR,
}

_DEFAULT_MESSAGES = {
    FailureKind.NETWORK_ERROR: "Could not reach the server",
    FailureKind.AUTH_REJECTED: "Invalid credentials",
    FailureKind.VALIDATION_ERROR: "The request was rejected as invalid",
    FailureKind.CONFLICT: "That account already exists",
    FailureKind.USERNAME_TAKEN: "That username is already taken",
    FailureKind.EMAIL_TAKEN: "That email is already registered",
    FailureKind.NOT_FOUND: "The record no longer exists",
    FailureKind.INTERNAL_ERROR: "Unexpected response from the server",
}


def classify_error(exc: Exception) -> Failure:
    """Translate an adapter or payload exception into a failure."""
    if isinstance(exc, httpx.HTTPStatusError):
        return _from_response(exc.response)
    if isinstance(exc, httpx.TransportError):
        return Failure(
            kind=FailureKind.NETWORK_ERROR,
            message=_DEFAULT_MESSAGES[FailureKind.NETWORK_ERROR],
        )
    return Failure(
        kind=FailureKind.INTERNAL_ERROR,
        message=_DEFAULT_MESSAGES[FailureKind.INTERNAL_ERROR],
    )


def classify_conflict(failure: Failure) -> Failure:
    """Tell a duplicate username apart from a duplicate email."""
    if failure.kind is not FailureKind.CONFLICT:
        return failure
    text = failure.message.lower()
    mentions_username = "username" in text
    mentions_email = "email" in text
    if mentions_username == mentions_email:
        return failure
    kind = FailureKind.USERNAME_TAKEN if mentions_username else FailureKind.EMAIL_TAKEN
    return Failure(kind=kind, message=failure.message, status_code=failure.status_code)


def validation_failure(message: str) -> Failure:
    """Failure for input rejected before any network call."""
    return Failure(kind=FailureKind.VALIDATION_ERROR, message=message)


def status_code_of(exc: Exception) -> str:
    """Extract an HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def _from_response(response: httpx.Response) -> Failure:
    status = response.status_code
    kind = _STATUS_KINDS.get(status, FailureKind.INTERNAL_ERROR)
    message = _error_message(response) or _DEFAULT_MESSAGES[kind]
    return Failure(kind=kind, message=message, status_code=status)


def _error_message(response: httpx.Response) -> str | None:
    """Return the backend's ``message``/``detail``/``error`` text, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "detail", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
