"""Dependency container wiring for the client."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from quickqr_client.adapters.auth_client import AuthClient, HttpxAuthClient
from quickqr_client.adapters.credential_storage import FileCredentialStorage
from quickqr_client.adapters.qr_client import HttpxQRClient, QRClient
from quickqr_client.config import Settings, resolve_timezone
from quickqr_client.services.guards import GuestGuard, ProtectedGuard
from quickqr_client.services.resources import ResourceStore
from quickqr_client.services.sessions import SessionStore


@dataclass
class AppContainer:
    """Holds the process-wide stores and their adapters."""

    settings: Settings
    auth_client: AuthClient
    qr_client: QRClient
    session_store: SessionStore
    resource_store: ResourceStore
    protected_guard: ProtectedGuard
    guest_guard: GuestGuard
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    auth_client = HttpxAuthClient.create(
        resolved_settings.api_base_url,
        timeout=resolved_settings.http_timeout_seconds,
    )
    qr_client = HttpxQRClient.create(
        resolved_settings.api_base_url,
        timeout=resolved_settings.http_timeout_seconds,
    )
    session_store = SessionStore(
        auth_client=auth_client,
        storage=FileCredentialStorage.create(resolved_settings.credential_storage_path),
        storage_key=resolved_settings.credential_storage_key,
    )
    resource_store = ResourceStore(
        qr_client=qr_client,
        session=session_store,
        timezone=resolve_timezone(resolved_settings.timezone),
        retry_attempts=resolved_settings.history_retry_attempts,
        retry_delay_seconds=resolved_settings.history_retry_delay_seconds,
    )

    async def close_resources() -> None:
        await auth_client.close()
        await qr_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_client=auth_client,
        qr_client=qr_client,
        session_store=session_store,
        resource_store=resource_store,
        protected_guard=ProtectedGuard(sign_in_path=resolved_settings.sign_in_path),
        guest_guard=GuestGuard(landing_path=resolved_settings.landing_path),
        close_resources=close_resources,
    )
