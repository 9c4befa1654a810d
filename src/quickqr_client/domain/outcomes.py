"""Failure taxonomy and operation outcomes returned by the stores."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureKind(Enum):
    """Expected failure modes surfaced to callers."""

    NETWORK_ERROR = "network_error"
    AUTH_REJECTED = "auth_rejected"
    INVALID_CREDENTIALS = "auth_rejected"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    USERNAME_TAKEN = "username_taken"
    EMAIL_TAKEN = "email_taken"
    NOT_FOUND = "not_found"
    LOAD_FAILED = "load_failed"
    CREATE_FAILED = "create_failed"
    DELETE_FAILED = "delete_failed"
    OPERATION_IN_PROGRESS = "operation_in_progress"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class Failure:
    """Describes why an operation did not complete."""

    kind: FailureKind
    message: str
    status_code: int | None = None
    cause: FailureKind | None = None

    def wrap(self, kind: FailureKind) -> "Failure":
        """Return this failure re-labelled as ``kind`` with the original cause."""
        return Failure(
            kind=kind,
            message=self.message,
            status_code=self.status_code,
            cause=self.cause or self.kind,
        )


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a store operation: either a value or a failure."""

    value: T | None = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: Failure) -> "Outcome[T]":
        return cls(failure=failure)
