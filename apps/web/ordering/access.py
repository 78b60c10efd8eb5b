"""
Café network access gate.

Restricts the menu to guests on the café Wi-Fi by matching the caller's
public address against known network prefixes.

This is a heuristic, not a security boundary: the address is self-reported
by a third-party lookup service (or a forwarded header server side) and is
trivially spoofed. It keeps casual off-site ordering out, nothing more.
"""

import logging
from collections.abc import Iterable

import httpx
import pydantic
from tableside_schemas import AccessDecision

logger = logging.getLogger(__name__)

DEFAULT_CAFE_PREFIXES = ("2402:e280", "58.84")


class _LookupResponse(pydantic.BaseModel):
    ip: str


def is_allowed_address(address: str, prefixes: Iterable[str]) -> bool:
    """True iff ``address`` starts with any of the configured prefixes."""
    address = address.strip()
    if not address:
        return False
    return any(prefix and address.startswith(prefix) for prefix in prefixes)


class NetworkAccessGate:
    """
    Decides whether the current client may view the menu.

    The decision starts in the ``checking`` state and is recomputed by
    ``check_access()``. Lookup failures deny access (fail-closed) and are
    logged, never raised. There is no automatic retry; ``retry()`` re-runs
    the check when the guest asks for it.
    """

    LOOKUP_URL = "https://api.ipify.org?format=json"

    def __init__(
        self,
        allowed_prefixes: Iterable[str] = DEFAULT_CAFE_PREFIXES,
        lookup_url: str = LOOKUP_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.allowed_prefixes = tuple(allowed_prefixes)
        self.lookup_url = lookup_url
        self.decision = AccessDecision()
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    async def lookup_address(self) -> str:
        """
        Ask the lookup service for our public address.

        Raises:
            httpx.HTTPError: If the request fails or returns non-2xx.
            pydantic.ValidationError: If the body carries no address.
        """
        response = await self._client.get(self.lookup_url)
        response.raise_for_status()
        return _LookupResponse.model_validate(response.json()).ip

    async def check_access(self) -> AccessDecision:
        """
        Run the network check and store the resulting decision.

        Returns:
            ``allowed=True`` iff the address matches a café prefix.
        """
        self.decision = AccessDecision()
        try:
            address = await self.lookup_address()
        except (httpx.HTTPError, pydantic.ValidationError, ValueError) as e:
            logger.warning("Address lookup failed, denying menu access: %s", e)
            self.decision = AccessDecision(allowed=False, checked=True)
            return self.decision

        allowed = is_allowed_address(address, self.allowed_prefixes)
        if allowed:
            logger.info("Client address %s is on the café network", address)
        else:
            logger.info("Client address %s is not on the café network", address)

        self.decision = AccessDecision(allowed=allowed, checked=True, address=address)
        return self.decision

    async def retry(self) -> AccessDecision:
        """Re-run the check (the gate screen's retry action)."""
        return await self.check_access()
