"""Tests for route guards."""

import asyncio

from quickqr_client.domain.models import SessionSnapshot, SessionStatus, UserRecord
from quickqr_client.services.guards import (
    GuardAction,
    GuestGuard,
    MountedGuard,
    ProtectedGuard,
)
from quickqr_client.services.sessions import SessionStore
from tests.conftest import FakeAuthClient, InMemoryCredentialStorage

USER = UserRecord(id="7", username="alice", email="alice@example.com")


def test_unknown_status_shows_loading_for_both_guards() -> None:
    snapshot = SessionSnapshot(status=SessionStatus.UNKNOWN)

    assert ProtectedGuard().evaluate(snapshot).action is GuardAction.LOADING
    assert GuestGuard().evaluate(snapshot).action is GuardAction.LOADING
    assert ProtectedGuard().evaluate(snapshot).location is None


def test_protected_guard() -> None:
    guard = ProtectedGuard(sign_in_path="/signin")

    anonymous = guard.evaluate(SessionSnapshot(status=SessionStatus.ANONYMOUS))
    signed_in = guard.evaluate(
        SessionSnapshot(status=SessionStatus.AUTHENTICATED, user=USER)
    )

    assert anonymous.action is GuardAction.REDIRECT
    assert anonymous.location == "/signin"
    assert signed_in.action is GuardAction.RENDER


def test_guest_guard() -> None:
    guard = GuestGuard()

    anonymous = guard.evaluate(SessionSnapshot(status=SessionStatus.ANONYMOUS))
    signed_in = guard.evaluate(
        SessionSnapshot(status=SessionStatus.AUTHENTICATED, user=USER)
    )

    assert anonymous.action is GuardAction.RENDER
    assert signed_in.action is GuardAction.REDIRECT
    assert signed_in.location == "/dashboard"


def test_mounted_guard_redirects_immediately_on_logout() -> None:
    session = SessionStore(
        auth_client=FakeAuthClient(), storage=InMemoryCredentialStorage()
    )
    changes = []
    mounted = MountedGuard(ProtectedGuard(), session, on_change=changes.append)
    assert mounted.decision.action is GuardAction.LOADING

    asyncio.run(session.restore())
    asyncio.run(session.login("alice@example.com", "secret1"))
    assert mounted.decision.action is GuardAction.RENDER

    session.logout()

    assert mounted.decision.action is GuardAction.REDIRECT
    assert mounted.decision.location == "/login"
    assert [change.action for change in changes] == [
        GuardAction.REDIRECT,
        GuardAction.RENDER,
        GuardAction.REDIRECT,
    ]


def test_unmounted_guard_stops_observing() -> None:
    session = SessionStore(
        auth_client=FakeAuthClient(), storage=InMemoryCredentialStorage()
    )
    mounted = MountedGuard(GuestGuard(), session)
    mounted.unmount()

    asyncio.run(session.restore())

    assert mounted.mounted is False
    assert mounted.decision.action is GuardAction.LOADING
