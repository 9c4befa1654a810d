"""Session-scoped store of the user's QR records."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

import httpx

from quickqr_client.adapters.qr_client import QRClient
from quickqr_client.domain.models import SessionSnapshot
from quickqr_client.domain.outcomes import Failure, FailureKind, Outcome
from quickqr_client.domain.qr import (
    ALL_TYPES,
    PayloadError,
    QRCounts,
    QRRecord,
    canonical_id,
    count_records,
    created_today,
    filter_records,
    normalize_record,
    normalize_records,
    unwrap_envelope,
    unwrap_list,
)
from quickqr_client.services.errors import (
    EXPECTED_ERRORS,
    classify_error,
    status_code_of,
    validation_failure,
)
from quickqr_client.services.events import Listener, Listeners
from quickqr_client.services.requests import QRRequest
from quickqr_client.services.sessions import SessionStore

_logger = logging.getLogger(__name__)

_CREATED = "created"
_DELETED = "deleted"


@dataclass(frozen=True)
class ResourceState:
    """Snapshot of the store published to subscribers."""

    records: tuple[QRRecord, ...]
    loading: bool
    error: Failure | None = None


@dataclass
class ResourceStore:
    """Keeps the local QR collection consistent with the backend.

    Creates are inserted only once the backend returns the record, and only
    if the id is not already held. Deletes are applied only after the backend
    confirms them. Completions touch the collection by id alone, so they may
    arrive in any order. Mutations confirmed while a history load is in
    flight are replayed over that load's result.
    """

    qr_client: QRClient
    session: SessionStore
    timezone: tzinfo | None = None
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    auto_load: bool = True
    _records: list[QRRecord] = field(default_factory=list, init=False)
    _error: Failure | None = field(default=None, init=False)
    _loads_in_flight: int = field(default=0, init=False)
    _load_seq: int = field(default=0, init=False)
    _generation: int = field(default=0, init=False)
    _journal: list[tuple[str, object]] = field(default_factory=list, init=False)
    _loaded_user_id: str | None = field(default=None, init=False)
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)
    _listeners: Listeners[ResourceState] = field(
        default_factory=Listeners, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.session.subscribe(self._on_session_change)

    @property
    def records(self) -> tuple[QRRecord, ...]:
        return tuple(self._records)

    @property
    def loading(self) -> bool:
        return self._loads_in_flight > 0

    @property
    def error(self) -> Failure | None:
        return self._error

    @property
    def state(self) -> ResourceState:
        return ResourceState(
            records=self.records, loading=self.loading, error=self._error
        )

    def subscribe(self, listener: Listener[ResourceState]) -> Callable[[], None]:
        """Receive a state snapshot after every change."""
        return self._listeners.subscribe(listener)

    def get(self, qr_id: object) -> QRRecord | None:
        """Return the held record with ``qr_id``, if any."""
        try:
            target = canonical_id(qr_id)
        except PayloadError:
            return None
        return next((record for record in self._records if record.id == target), None)

    async def load(self) -> Outcome[tuple[QRRecord, ...]]:
        """Fetch the full history and replace the collection."""
        token = self.session.bearer_token()
        if token is None:
            return Outcome.failed(_signed_out().wrap(FailureKind.LOAD_FAILED))

        self._load_seq += 1
        seq = self._load_seq
        generation = self._generation
        mark = len(self._journal)
        self._loads_in_flight += 1
        self._publish()

        failure: Failure | None = None
        fetched: list[QRRecord] = []
        try:
            payload = await self._fetch_history(token)
            fetched = normalize_records(unwrap_list(payload))
        except EXPECTED_ERRORS as exc:
            failure = classify_error(exc)
        finally:
            self._loads_in_flight -= 1

        current = generation == self._generation
        latest = current and seq == self._load_seq
        pending = self._journal[mark:] if current else []
        if self._loads_in_flight == 0:
            self._journal.clear()

        if failure is not None:
            wrapped = failure.wrap(FailureKind.LOAD_FAILED)
            _logger.warning(
                "History load failed: cause=%s status=%s",
                failure.kind.value,
                failure.status_code,
            )
            if latest:
                self._error = wrapped
            self._publish()
            self._handle_rejection(failure, token)
            return Outcome.failed(wrapped)

        if not latest:
            _logger.info("Discarding superseded history load")
            self._publish()
            return Outcome.success(self.records)

        self._records = _replay(fetched, pending)
        self._error = None
        self._publish()
        _logger.info("History loaded: records=%s", len(self._records))
        return Outcome.success(self.records)

    async def create(self, request: QRRequest) -> Outcome[QRRecord]:
        """Generate a QR code and insert the confirmed record."""
        token = self.session.bearer_token()
        if token is None:
            return Outcome.failed(_signed_out().wrap(FailureKind.CREATE_FAILED))

        generation = self._generation
        try:
            payload = await self.qr_client.generate(token, request.url, request.name)
            record = normalize_record(unwrap_envelope(payload))
        except EXPECTED_ERRORS as exc:
            failure = classify_error(exc)
            _logger.warning(
                "QR create failed: cause=%s status=%s",
                failure.kind.value,
                failure.status_code,
            )
            self._handle_rejection(failure, token)
            return Outcome.failed(failure.wrap(FailureKind.CREATE_FAILED))

        if generation != self._generation:
            _logger.info("QR create completed after session change; not inserted")
            return Outcome.success(record)
        self._insert(record)
        return Outcome.success(record)

    async def delete(self, qr_id: object) -> Outcome[bool]:
        """Delete on the backend, then drop the record locally.

        The value reports whether a held record was removed; deleting an id
        that is no longer held succeeds silently.
        """
        try:
            target = canonical_id(qr_id)
        except PayloadError:
            return Outcome.failed(validation_failure("Invalid QR code id"))
        token = self.session.bearer_token()
        if token is None:
            return Outcome.failed(_signed_out().wrap(FailureKind.DELETE_FAILED))

        generation = self._generation
        try:
            await self.qr_client.delete(token, target)
        except EXPECTED_ERRORS as exc:
            failure = classify_error(exc)
            if failure.kind is FailureKind.NOT_FOUND:
                if generation == self._generation:
                    self._remove(target)
                return Outcome.failed(failure)
            _logger.warning(
                "QR delete failed: id=%s cause=%s status=%s",
                target,
                failure.kind.value,
                failure.status_code,
            )
            self._handle_rejection(failure, token)
            return Outcome.failed(failure.wrap(FailureKind.DELETE_FAILED))

        if generation != self._generation:
            return Outcome.success(False)
        return Outcome.success(self._remove(target))

    async def download_image(self, qr_id: object) -> Outcome[tuple[str, bytes]]:
        """Fetch a record's rendered image as ``(filename, bytes)``."""
        record = self.get(qr_id)
        if record is None or not record.image_url:
            return Outcome.failed(
                Failure(kind=FailureKind.NOT_FOUND, message="No image for this QR code")
            )
        token = self.session.bearer_token()
        if token is None:
            return Outcome.failed(_signed_out())
        try:
            content = await self.qr_client.download_image(token, record.image_url)
        except EXPECTED_ERRORS as exc:
            failure = classify_error(exc)
            self._handle_rejection(failure, token)
            return Outcome.failed(failure)
        return Outcome.success((record.download_filename, content))

    def derived_counts(self, now: datetime | None = None) -> QRCounts:
        """Total, created-today and distinct-type counts of the current collection."""
        return count_records(self._records, now=now, tz=self.timezone)

    def filtered_view(self, tag: str = ALL_TYPES) -> list[QRRecord]:
        """Records of type ``tag`` (all records for ``all``), newest first."""
        return filter_records(self._records, tag)

    def today_view(self, now: datetime | None = None) -> list[QRRecord]:
        """Records created on the current local date, newest first."""
        return created_today(self._records, now=now, tz=self.timezone)

    def available_types(self) -> list[str]:
        """Filter choices: ``all`` then each type in first-seen order."""
        types = [ALL_TYPES]
        for record in self._records:
            if record.type not in types:
                types.append(record.type)
        return types

    def clear(self) -> None:
        """Drop session-scoped records; late completions are discarded."""
        self._generation += 1
        self._records = []
        self._error = None
        self._journal.clear()
        self._publish()

    async def wait_idle(self) -> None:
        """Wait for loads scheduled by session changes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fetch_history(self, token: str) -> object:
        attempt = 0
        while True:
            try:
                return await self.qr_client.list_history(token)
            except httpx.TransportError as exc:
                attempt += 1
                _logger.warning(
                    "History fetch failed (attempt %s/%s, status=%s): %s",
                    attempt,
                    self.retry_attempts + 1,
                    status_code_of(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)

    def _insert(self, record: QRRecord) -> None:
        if self._loads_in_flight:
            self._journal.append((_CREATED, record))
        if any(held.id == record.id for held in self._records):
            return
        self._records.insert(0, record)
        self._publish()

    def _remove(self, qr_id: str) -> bool:
        if self._loads_in_flight:
            self._journal.append((_DELETED, qr_id))
        remaining = [record for record in self._records if record.id != qr_id]
        if len(remaining) == len(self._records):
            return False
        self._records = remaining
        self._publish()
        return True

    def _handle_rejection(self, failure: Failure, token: str) -> None:
        if failure.kind is FailureKind.AUTH_REJECTED:
            self.session.reject_credential(token)

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        if not snapshot.is_authenticated or snapshot.user is None:
            if self._loaded_user_id is not None or self._records or self._error:
                self.clear()
            self._loaded_user_id = None
            return
        if snapshot.user.id == self._loaded_user_id:
            return
        if self._loaded_user_id is not None:
            self.clear()
        self._loaded_user_id = snapshot.user.id
        if self.auto_load:
            self._schedule_load()

    def _schedule_load(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running event loop; history load left to the caller")
            return
        task = loop.create_task(self.load())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _publish(self) -> None:
        self._listeners.publish(self.state)


def _replay(
    fetched: list[QRRecord], pending: Sequence[tuple[str, object]]
) -> list[QRRecord]:
    """Apply mutations confirmed during a load on top of its result."""
    records = list(fetched)
    for action, item in pending:
        if action == _CREATED and isinstance(item, QRRecord):
            if all(record.id != item.id for record in records):
                records.insert(0, item)
        elif action == _DELETED:
            records = [record for record in records if record.id != item]
    return records


def _signed_out() -> Failure:
    return Failure(kind=FailureKind.AUTH_REJECTED, message="Not signed in")
