"""Credential backend API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class AuthClient(Protocol):
    """Interface for the authentication endpoints."""

    async def login(self, email: str, password: str) -> dict[str, object]:
        """Exchange credentials for ``{user, token}``."""

    async def register(
        self, username: str, email: str, password: str
    ) -> dict[str, object]:
        """Create an account and return ``{user, token}``."""

    async def get_profile(self, token: str) -> dict[str, object]:
        """Return the profile for the bearer ``token``."""


@dataclass
class HttpxAuthClient(AuthClient):
    """HTTPX-backed authentication client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(cls, base_url: str, timeout: float = 10.0) -> "HttpxAuthClient":
        """Create an auth client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def login(self, email: str, password: str) -> dict[str, object]:
        """Log in with email and password."""
        response = await self.http_client.post(
            f"{self.base_url}/auth/login",
            json={"email": email, "password": password},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def register(
        self, username: str, email: str, password: str
    ) -> dict[str, object]:
        """Register a new account."""
        response = await self.http_client.post(
            f"{self.base_url}/auth/register",
            json={"username": username, "email": email, "password": password},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def get_profile(self, token: str) -> dict[str, object]:
        """Fetch the current user's profile."""
        response = await self.http_client.get(
            f"{self.base_url}/auth/me",
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
