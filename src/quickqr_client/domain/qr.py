"""QR record model and backend payload normalization."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo

ALL_TYPES = "all"
DEFAULT_TYPE = "url"

_ENVELOPE_KEYS = ("data", "qr", "qrCode", "qr_code", "record", "result")
_LIST_ENVELOPE_KEYS = ("data", "history", "items", "results", "qrCodes", "qr_codes")


class PayloadError(ValueError):
    """Raised when a backend payload cannot be read as a QR record."""


@dataclass(frozen=True)
class QRRecord:
    """Canonical QR code record held by the resource store."""

    id: str
    name: str
    url: str
    image_url: str | None
    type: str
    created_at: datetime
    scans: int = 0
    created_at_inferred: bool = False

    @property
    def download_filename(self) -> str:
        return f"{self.name or 'qr-code'}.png"

    def local_date(self, tz: tzinfo | None = None) -> date:
        """Return the creation date in ``tz`` (system local zone when ``None``)."""
        return self.created_at.astimezone(tz).date()


@dataclass(frozen=True)
class QRCounts:
    """Aggregate counts derived from the current collection."""

    total: int
    today: int
    types: int


def canonical_id(value: object) -> str:
    """Return the text form used to compare record ids."""
    if value is None or isinstance(value, bool):
        raise PayloadError(f"Invalid record id: {value!r}")
    text = str(value).strip()
    if not text:
        raise PayloadError("Record id is empty")
    return text


def unwrap_envelope(payload: object) -> object:
    """Strip a single envelope object around a record, if present."""
    if not isinstance(payload, dict) or "id" in payload:
        return payload
    for key in _ENVELOPE_KEYS:
        inner = payload.get(key)
        if isinstance(inner, dict):
            return inner
    return payload


def unwrap_list(payload: object) -> list[object]:
    """Return the record list from a bare list or a list envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in _LIST_ENVELOPE_KEYS:
            inner = payload.get(key)
            if isinstance(inner, list):
                return inner
    raise PayloadError("History payload is not a list")


def normalize_record(payload: object, now: datetime | None = None) -> QRRecord:
    """Normalize a snake_case or camelCase backend object into a QRRecord."""
    if not isinstance(payload, dict):
        raise PayloadError("QR payload must be an object")
    if "id" not in payload:
        raise PayloadError("QR payload is missing an id")

    image_url = _first_present(payload, "image_url", "imageUrl")
    raw_created = _first_present(payload, "created_at", "createdAt")
    if raw_created is None:
        created_at = now or datetime.now(tz=UTC)
        inferred = True
    else:
        created_at = _parse_timestamp(raw_created)
        inferred = False

    raw_type = payload.get("type")
    return QRRecord(
        id=canonical_id(payload["id"]),
        name=str(payload.get("name") or ""),
        url=str(payload.get("url") or ""),
        image_url=str(image_url) if image_url else None,
        type=str(raw_type) if raw_type else DEFAULT_TYPE,
        created_at=created_at,
        scans=_parse_scans(payload.get("scans")),
        created_at_inferred=inferred,
    )


def normalize_records(
    payloads: Iterable[object], now: datetime | None = None
) -> list[QRRecord]:
    """Normalize a history list; a repeated id replaces the earlier entry in place."""
    stamp = now or datetime.now(tz=UTC)
    records: dict[str, QRRecord] = {}
    for payload in payloads:
        record = normalize_record(payload, now=stamp)
        records[record.id] = record
    return list(records.values())


def count_records(
    records: Iterable[QRRecord], now: datetime | None = None, tz: tzinfo | None = None
) -> QRCounts:
    """Compute total, created-today and distinct-type counts."""
    current = now or datetime.now(tz=UTC)
    today = current.astimezone(tz).date()
    total = 0
    today_count = 0
    types: set[str] = set()
    for record in records:
        total += 1
        if record.local_date(tz) == today:
            today_count += 1
        if record.type != ALL_TYPES:
            types.add(record.type)
    return QRCounts(total=total, today=today_count, types=len(types))


def created_today(
    records: Iterable[QRRecord], now: datetime | None = None, tz: tzinfo | None = None
) -> list[QRRecord]:
    """Return records whose creation falls on the current date in ``tz``."""
    current = now or datetime.now(tz=UTC)
    today = current.astimezone(tz).date()
    return [record for record in records if record.local_date(tz) == today]


def filter_records(records: Iterable[QRRecord], tag: str) -> list[QRRecord]:
    """Return records matching ``tag``, or all of them for the ``all`` sentinel."""
    if tag == ALL_TYPES:
        return list(records)
    return [record for record in records if record.type == tag]


def _first_present(payload: dict, *keys: str) -> object | None:
    for key in keys:
        value = payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.strip())
        except ValueError as exc:
            raise PayloadError(f"Invalid timestamp: {raw!r}") from exc
    else:
        raise PayloadError(f"Invalid timestamp: {raw!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_scans(raw: object) -> int:
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int | float):
        return max(int(raw), 0)
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return 0
