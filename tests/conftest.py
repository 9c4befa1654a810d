"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import httpx
import pytest

from quickqr_client.adapters.auth_client import AuthClient
from quickqr_client.adapters.credential_storage import CredentialStorage
from quickqr_client.adapters.qr_client import QRClient
from quickqr_client.config import DEFAULT_CREDENTIAL_KEY, Settings
from quickqr_client.containers import AppContainer
from quickqr_client.services.guards import GuestGuard, ProtectedGuard
from quickqr_client.services.resources import ResourceStore
from quickqr_client.services.sessions import SessionStore

ALICE = {"id": 7, "username": "alice", "email": "alice@example.com"}


def http_error(status_code: int, body: dict | None = None) -> httpx.HTTPStatusError:
    """Build the error httpx raises from ``raise_for_status``."""
    request = httpx.Request("GET", "https://api.test")
    response = httpx.Response(status_code, json=body or {}, request=request)
    return httpx.HTTPStatusError(
        f"HTTP {status_code}", request=request, response=response
    )


def network_error() -> httpx.ConnectError:
    return httpx.ConnectError("connection refused")


def qr_payload(qr_id: int, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": qr_id,
        "name": f"QR {qr_id}",
        "url": f"https://example.com/{qr_id}",
        "image_url": f"/images/{qr_id}.png",
        "created_at": "2024-01-01T00:00:00Z",
        "type": "url",
    }
    payload.update(overrides)
    return payload


@dataclass
class InMemoryCredentialStorage(CredentialStorage):
    """In-memory credential storage for tests."""

    values: dict[str, str] = field(default_factory=dict)
    writes: int = 0

    def read(self, key: str) -> str | None:
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        self.writes += 1
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class FakeAuthClient(AuthClient):
    """Fake credential backend with in-memory accounts."""

    accounts: dict[str, dict[str, object]] = field(
        default_factory=lambda: {
            "alice@example.com": {
                "user": ALICE,
                "password": "secret1",
                "token": "token-alice",
            }
        }
    )
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: list[str] = field(default_factory=list)

    async def login(self, email: str, password: str) -> dict[str, object]:
        self.calls.append("login")
        await self._wait()
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise http_error(401, {"message": "Invalid email or password"})
        return {"user": account["user"], "token": account["token"]}

    async def register(
        self, username: str, email: str, password: str
    ) -> dict[str, object]:
        self.calls.append("register")
        await self._wait()
        if any(
            account["user"]["username"] == username
            for account in self.accounts.values()
        ):
            raise http_error(409, {"message": "Username already taken"})
        if email in self.accounts:
            raise http_error(409, {"message": "Email already registered"})
        user = {"id": len(self.accounts) + 100, "username": username, "email": email}
        token = f"token-{username}"
        self.accounts[email] = {"user": user, "password": password, "token": token}
        return {"user": user, "token": token}

    async def get_profile(self, token: str) -> dict[str, object]:
        self.calls.append("profile")
        await self._wait()
        for account in self.accounts.values():
            if account["token"] == token:
                return {"user": account["user"]}
        raise http_error(401, {"message": "Token expired"})

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error


@dataclass
class FakeQRClient(QRClient):
    """Fake QR backend; gates let tests choose completion order."""

    history: list[dict[str, object]] = field(default_factory=list)
    history_errors: list[Exception] = field(default_factory=list)
    generate_error: Exception | None = None
    delete_errors: dict[str, Exception] = field(default_factory=dict)
    images: dict[str, bytes] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    next_id: int = 100
    history_calls: int = 0
    deleted: list[str] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)

    async def list_history(self, token: str) -> object:
        self.history_calls += 1
        self.tokens.append(token)
        snapshot = [dict(item) for item in self.history]
        await self._wait("history")
        if self.history_errors:
            raise self.history_errors.pop(0)
        return snapshot

    async def generate(self, token: str, url: str, name: str) -> object:
        self.tokens.append(token)
        await self._wait(f"generate:{name}")
        if self.generate_error is not None:
            raise self.generate_error
        self.next_id += 1
        created = {
            "id": self.next_id,
            "name": name,
            "url": url,
            "imageUrl": f"/images/{self.next_id}.png",
            "createdAt": "2024-03-01T10:00:00Z",
        }
        self.history.insert(0, created)
        return {"success": True, "data": created}

    async def delete(self, token: str, qr_id: str) -> None:
        self.tokens.append(token)
        await self._wait(f"delete:{qr_id}")
        error = self.delete_errors.get(qr_id)
        if error is not None:
            raise error
        self.deleted.append(qr_id)
        self.history = [item for item in self.history if str(item["id"]) != qr_id]

    async def download_image(self, token: str, image_url: str) -> bytes:
        self.tokens.append(token)
        if image_url not in self.images:
            raise http_error(404)
        return self.images[image_url]

    async def _wait(self, key: str) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()


def build_stores(
    auth_client: FakeAuthClient | None = None,
    qr_client: FakeQRClient | None = None,
    storage: InMemoryCredentialStorage | None = None,
    auto_load: bool = False,
) -> tuple[SessionStore, ResourceStore]:
    """Wire a session store and resource store around fakes."""
    session = SessionStore(
        auth_client=auth_client or FakeAuthClient(),
        storage=storage or InMemoryCredentialStorage(),
    )
    resources = ResourceStore(
        qr_client=qr_client or FakeQRClient(),
        session=session,
        retry_delay_seconds=0,
        auto_load=auto_load,
    )
    return session, resources


def stored(token: str) -> InMemoryCredentialStorage:
    return InMemoryCredentialStorage(values={DEFAULT_CREDENTIAL_KEY: token})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://api.test/api",
        credential_storage_path="/tmp/quickqr-test/credentials.json",
    )


@pytest.fixture
def auth_client() -> FakeAuthClient:
    return FakeAuthClient()


@pytest.fixture
def qr_client() -> FakeQRClient:
    return FakeQRClient(
        history=[qr_payload(1), qr_payload(2, type="qr")],
        images={"/images/1.png": b"png-bytes"},
    )


@pytest.fixture
def storage() -> InMemoryCredentialStorage:
    return InMemoryCredentialStorage()


@pytest.fixture
def container(
    settings: Settings,
    auth_client: FakeAuthClient,
    qr_client: FakeQRClient,
    storage: InMemoryCredentialStorage,
) -> AppContainer:
    session_store, resource_store = build_stores(
        auth_client=auth_client, qr_client=qr_client, storage=storage
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        auth_client=auth_client,
        qr_client=qr_client,
        session_store=session_store,
        resource_store=resource_store,
        protected_guard=ProtectedGuard(sign_in_path=settings.sign_in_path),
        guest_guard=GuestGuard(landing_path=settings.landing_path),
        close_resources=close_resources,
    )
