"""Domain models for the client session."""

from dataclasses import dataclass
from enum import Enum


class SessionStatus(Enum):
    """Authentication status known to the client."""

    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class UserRecord:
    """Represents the signed-in user as reported by the backend."""

    id: str
    username: str
    email: str


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session handed to subscribers.

    The bearer credential is not part of it; only the session store
    holds it.
    """

    status: SessionStatus
    user: UserRecord | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def is_resolved(self) -> bool:
        return self.status is not SessionStatus.UNKNOWN


def parse_user(payload: object) -> UserRecord:
    """Build a user record from a backend user object."""
    if not isinstance(payload, dict):
        raise ValueError("User payload must be an object")
    user_id = payload.get("id", payload.get("_id"))
    if user_id is None:
        raise ValueError("User payload is missing an id")
    return UserRecord(
        id=str(user_id),
        username=str(payload.get("username") or ""),
        email=str(payload.get("email") or ""),
    )
