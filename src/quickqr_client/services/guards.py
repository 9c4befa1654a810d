"""View-access policy keyed off the session status."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from quickqr_client.domain.models import SessionSnapshot, SessionStatus
from quickqr_client.services.sessions import SessionStore


class GuardAction(Enum):
    """What the view layer should do with a requested view."""

    LOADING = "loading"
    RENDER = "render"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    """Decision for one evaluation; ``location`` is set only for redirects."""

    action: GuardAction
    location: str | None = None


LOADING = GuardDecision(GuardAction.LOADING)
RENDER = GuardDecision(GuardAction.RENDER)


@dataclass(frozen=True)
class ProtectedGuard:
    """Renders only for authenticated sessions."""

    sign_in_path: str = "/login"

    def evaluate(self, snapshot: SessionSnapshot) -> GuardDecision:
        if snapshot.status is SessionStatus.UNKNOWN:
            return LOADING
        if snapshot.status is SessionStatus.AUTHENTICATED:
            return RENDER
        return GuardDecision(GuardAction.REDIRECT, self.sign_in_path)


@dataclass(frozen=True)
class GuestGuard:
    """Renders only for anonymous sessions (sign-in and sign-up views)."""

    landing_path: str = "/dashboard"

    def evaluate(self, snapshot: SessionSnapshot) -> GuardDecision:
        if snapshot.status is SessionStatus.UNKNOWN:
            return LOADING
        if snapshot.status is SessionStatus.ANONYMOUS:
            return RENDER
        return GuardDecision(GuardAction.REDIRECT, self.landing_path)


Guard = ProtectedGuard | GuestGuard


@dataclass
class MountedGuard:
    """A guard bound to the session store for as long as its view is mounted.

    The decision is recomputed on every session transition, so a logout
    while a protected view is shown yields a redirect immediately.
    """

    guard: Guard
    session: SessionStore
    on_change: Callable[[GuardDecision], None] | None = None
    decision: GuardDecision = field(init=False)
    _unsubscribe: Callable[[], None] | None = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.decision = self.guard.evaluate(self.session.snapshot)
        self._unsubscribe = self.session.subscribe(self._reevaluate)

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def unmount(self) -> None:
        """Stop observing the session."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _reevaluate(self, snapshot: SessionSnapshot) -> None:
        decision = self.guard.evaluate(snapshot)
        if decision == self.decision:
            return
        self.decision = decision
        if self.on_change is not None:
            self.on_change(decision)
