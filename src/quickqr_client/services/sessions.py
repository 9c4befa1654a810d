"""Authentication session state machine."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from quickqr_client.adapters.auth_client import AuthClient
from quickqr_client.adapters.credential_storage import CredentialStorage
from quickqr_client.config import DEFAULT_CREDENTIAL_KEY
from quickqr_client.domain.models import (
    SessionSnapshot,
    SessionStatus,
    UserRecord,
    parse_user,
)
from quickqr_client.domain.outcomes import Failure, FailureKind, Outcome
from quickqr_client.services.errors import (
    EXPECTED_ERRORS,
    classify_conflict,
    classify_error,
    status_code_of,
    validation_failure,
)
from quickqr_client.services.events import Listener, Listeners

_logger = logging.getLogger(__name__)


@dataclass
class SessionStore:
    """Single source of truth for who is using the client right now.

    Transitions: ``UNKNOWN`` resolves once to ``ANONYMOUS`` or
    ``AUTHENTICATED``; login/register and logout move between the two; a
    rejected credential always lands in ``ANONYMOUS``. Only one of
    restore/login/register may be in flight at a time.
    """

    auth_client: AuthClient
    storage: CredentialStorage
    storage_key: str = DEFAULT_CREDENTIAL_KEY
    _status: SessionStatus = field(default=SessionStatus.UNKNOWN, init=False)
    _user: UserRecord | None = field(default=None, init=False)
    _credential: str | None = field(default=None, init=False, repr=False)
    _busy: bool = field(default=False, init=False)
    _restore_deferred: bool = field(default=False, init=False)
    _listeners: Listeners[SessionSnapshot] = field(
        default_factory=Listeners, init=False, repr=False
    )

    @property
    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(status=self._status, user=self._user)

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def user(self) -> UserRecord | None:
        return self._user

    @property
    def busy(self) -> bool:
        return self._busy

    def subscribe(self, listener: Listener[SessionSnapshot]) -> Callable[[], None]:
        """Receive a snapshot after every transition."""
        return self._listeners.subscribe(listener)

    def bearer_token(self) -> str | None:
        """Credential for authenticated requests; never part of the snapshot."""
        return self._credential

    async def restore(self) -> SessionSnapshot:
        """Resolve the initial status from the persisted credential. Never raises."""
        if self._status is not SessionStatus.UNKNOWN:
            return self.snapshot
        if self._busy:
            # Resumed by the in-flight login/register if it fails.
            self._restore_deferred = True
            return self.snapshot
        self._restore_deferred = False
        token = self._read_stored()
        if token is None:
            self._set_anonymous()
            _logger.info("Session restored: no stored credential")
            return self.snapshot

        self._busy = True
        try:
            payload = await self.auth_client.get_profile(token)
            user = parse_user(_user_payload(payload))
        except Exception as exc:  # restore absorbs every failure into ANONYMOUS
            _logger.warning(
                "Stored credential could not be validated (status=%s): %s",
                status_code_of(exc),
                exc,
            )
            if self._status is SessionStatus.UNKNOWN:
                self._discard_stored()
                self._set_anonymous()
            return self.snapshot
        finally:
            self._busy = False

        if self._status is SessionStatus.UNKNOWN:
            self._set_authenticated(user, token)
            _logger.info("Session restored: user_id=%s", user.id)
        return self.snapshot

    async def login(self, email: str, password: str) -> Outcome[UserRecord]:
        """Authenticate with email and password."""
        if not email.strip() or not password:
            return Outcome.failed(validation_failure("Email and password are required"))
        return await self._authenticate(
            "login", lambda: self.auth_client.login(email.strip(), password)
        )

    async def register(
        self, username: str, email: str, password: str
    ) -> Outcome[UserRecord]:
        """Create an account and sign in.

        Profile rules (password length, confirmation) are checked by the
        caller before this is invoked.
        """
        if not username.strip() or not email.strip() or not password:
            return Outcome.failed(
                validation_failure("Username, email and password are required")
            )
        return await self._authenticate(
            "register",
            lambda: self.auth_client.register(
                username.strip(), email.strip(), password
            ),
            classify=lambda exc: classify_conflict(classify_error(exc)),
        )

    def logout(self) -> SessionSnapshot:
        """End the session locally; no backend round-trip is needed."""
        self._discard_stored()
        self._set_anonymous()
        _logger.info("Session ended by logout")
        return self.snapshot

    def reject_credential(self, token: str | None = None) -> None:
        """Drop the session after the backend refused its credential.

        When ``token`` is given, a rejection of a credential that has since
        been replaced is ignored.
        """
        if token is not None and token != self._credential:
            return
        _logger.warning("Credential rejected by backend; signing out")
        self._discard_stored()
        self._set_anonymous()

    async def _authenticate(
        self,
        action: str,
        call: Callable[[], Awaitable[dict[str, object]]],
        classify: Callable[[Exception], Failure] = classify_error,
    ) -> Outcome[UserRecord]:
        if self._busy:
            return Outcome.failed(
                Failure(
                    kind=FailureKind.OPERATION_IN_PROGRESS,
                    message="Another sign-in is already in progress",
                )
            )
        self._busy = True
        failure: Failure | None = None
        try:
            payload = await call()
            user, token = _read_auth_payload(payload)
            self.storage.write(self.storage_key, token)
        except (*EXPECTED_ERRORS, OSError) as exc:
            failure = classify(exc)
            _logger.warning(
                "Session %s failed: kind=%s status=%s",
                action,
                failure.kind.value,
                failure.status_code,
            )
        finally:
            self._busy = False

        if failure is not None:
            if self._restore_deferred and self._status is SessionStatus.UNKNOWN:
                await self.restore()
            return Outcome.failed(failure)

        self._set_authenticated(user, token)
        _logger.info("Session authenticated via %s: user_id=%s", action, user.id)
        return Outcome.success(user)

    def _set_authenticated(self, user: UserRecord, token: str) -> None:
        self._user = user
        self._credential = token
        self._status = SessionStatus.AUTHENTICATED
        self._listeners.publish(self.snapshot)

    def _set_anonymous(self) -> None:
        self._user = None
        self._credential = None
        self._status = SessionStatus.ANONYMOUS
        self._listeners.publish(self.snapshot)

    def _read_stored(self) -> str | None:
        try:
            return self.storage.read(self.storage_key)
        except OSError:
            _logger.warning("Credential storage unreadable; treating as empty")
            return None

    def _discard_stored(self) -> None:
        try:
            self.storage.remove(self.storage_key)
        except OSError:
            _logger.warning("Could not remove stored credential")


def _user_payload(payload: object) -> object:
    """Find the user object in a profile response."""
    if isinstance(payload, dict):
        if isinstance(payload.get("user"), dict):
            return payload["user"]
        data = payload.get("data")
        if isinstance(data, dict):
            return data.get("user", data)
    return payload


def _read_auth_payload(payload: object) -> tuple[UserRecord, str]:
    """Extract ``(user, token)`` from a login/register response."""
    if isinstance(payload, dict) and "token" not in payload:
        data = payload.get("data")
        if isinstance(data, dict):
            payload = data
    if not isinstance(payload, dict):
        raise ValueError("Auth response must be an object")
    token = payload.get("token") or payload.get("access_token")
    if not isinstance(token, str) or not token:
        raise ValueError("Auth response is missing a token")
    return parse_user(payload.get("user")), token
