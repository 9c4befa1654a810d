"""QR backend API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class QRClient(Protocol):
    """Interface for the QR history and generation endpoints."""

    async def list_history(self, token: str) -> object:
        """Return the raw history payload."""

    async def generate(self, token: str, url: str, name: str) -> object:
        """Generate a QR code and return the raw created record."""

    async def delete(self, token: str, qr_id: str) -> None:
        """Delete a QR code by id."""

    async def download_image(self, token: str, image_url: str) -> bytes:
        """Download a rendered QR image."""


@dataclass
class HttpxQRClient(QRClient):
    """HTTPX-backed QR client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(cls, base_url: str, timeout: float = 10.0) -> "HttpxQRClient":
        """Create a QR client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def list_history(self, token: str) -> object:
        """Fetch the user's QR history."""
        response = await self.http_client.get(
            f"{self.base_url}/qr/history",
            headers=_auth_headers(token),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def generate(self, token: str, url: str, name: str) -> object:
        """Ask the backend to generate a QR code for ``url``."""
        response = await self.http_client.post(
            f"{self.base_url}/qr/generate",
            json={"url": url, "name": name},
            headers=_auth_headers(token),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def delete(self, token: str, qr_id: str) -> None:
        """Delete a QR code; any 2xx counts as confirmation."""
        response = await self.http_client.delete(
            f"{self.base_url}/qr/{qr_id}",
            headers=_auth_headers(token),
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def download_image(self, token: str, image_url: str) -> bytes:
        """Download image bytes; relative locators resolve against the API base.

        The credential is only attached for locators served by the API itself.
        """
        url = httpx.URL(image_url)
        if not url.is_absolute_url:
            url = httpx.URL(f"{self.base_url}/{image_url.lstrip('/')}")
        headers = _auth_headers(token) if self._serves(url) else None
        response = await self.http_client.get(
            url,
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _serves(self, url: httpx.URL) -> bool:
        """Whether ``url`` is on the API origin and under its base path."""
        base = httpx.URL(self.base_url)
        if (url.scheme, url.host, url.port) != (base.scheme, base.host, base.port):
            return False
        base_path = base.path.rstrip("/")
        return url.path == base_path or url.path.startswith(f"{base_path}/")


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
