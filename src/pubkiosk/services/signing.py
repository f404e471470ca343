"""Request signing for the cross-reference (xID) service."""

from __future__ import annotations

import asyncio
import hashlib

import httpx
import structlog

logger = structlog.get_logger(__name__)


class SigningError(RuntimeError):
    """Raised when a signed request cannot be prepared."""


def sign_request(url: str, caller_ip: str, secret: str) -> str:
    """Return the lowercase hex MD5 of ``url|caller_ip|secret``."""
    message = f"{url}|{caller_ip}|{secret}".encode("utf-8")
    return hashlib.md5(message).hexdigest()


class PublicAddress:
    """Lazily resolved public IP of this host, cached for the handle's lifetime.

    The value is looked up once through the IP echo service and never
    revalidated; share one handle for the whole process.
    """

    def __init__(self, echo_url: str) -> None:
        self._echo_url = echo_url
        self._lock = asyncio.Lock()
        self._address: str | None = None

    @property
    def cached(self) -> str | None:
        return self._address

    async def get(self, client: httpx.AsyncClient) -> str:
        if self._address is not None:
            return self._address
        async with self._lock:
            if self._address is None:
                self._address = await self._lookup(client)
        return self._address

    async def _lookup(self, client: httpx.AsyncClient) -> str:
        try:
            response = await client.get(self._echo_url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SigningError(f"Could not determine public IP: {exc}") from exc
        origin = payload.get("origin") if isinstance(payload, dict) else None
        if not origin:
            raise SigningError("IP echo response did not include an origin")
        logger.info("signing.public_ip", address=origin)
        return str(origin)


class RequestSigner:
    """Builds the token/hash query parameters the xID service expects."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        address: PublicAddress,
        token: str | None,
        secret: str | None,
    ) -> None:
        self._client = client
        self._address = address
        self._token = token
        self._secret = secret

    async def signed_params(self, url: str) -> dict[str, str]:
        if not self._token or not self._secret:
            raise SigningError("xID token and secret must be configured")
        caller_ip = await self._address.get(self._client)
        return {"token": self._token, "hash": sign_request(url, caller_ip, self._secret)}
