"""
HTTP transport for the Wallet Bridge relay.

The relay exposes two endpoints:

- ``POST /request`` stores an encrypted request and returns its ``request_id``
- ``GET /response/{request_id}`` reports the request status and, once the
  wallet has answered, the encrypted response

This module performs no retries; callers decide whether to start over.
"""

from __future__ import annotations

import logging
from uuid import UUID

import httpx

from .bridge_url import DEFAULT_BRIDGE_URL, BridgeURL
from .errors import (
    BridgeRequestFailedError,
    ConnectionFailedError,
    UnexpectedResponseError,
    UnrecognizedBridgeResponseError,
)
from .models import BridgeQueryResponse, CreateRequestResponse, Envelope

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "wallet-bridge-python"
DEFAULT_TIMEOUT = 10.0


class RelayTransport:
    """
    Stateless client for one relay.

    Uses the given ``httpx.AsyncClient`` when one is passed in (the caller
    keeps ownership), otherwise creates and owns one.
    """

    def __init__(
        self,
        bridge_url: BridgeURL = DEFAULT_BRIDGE_URL,
        client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.bridge_url = bridge_url
        self.user_agent = user_agent
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> RelayTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self.client.aclose()

    async def create_request(self, envelope: Envelope) -> UUID:
        """
        Store an encrypted request on the relay.

        Returns:
            The request identifier assigned by the relay

        Raises:
            UnrecognizedBridgeResponseError: no usable HTTP response came back
            BridgeRequestFailedError: the relay answered with a non-2xx status
            UnexpectedResponseError: the 2xx body has no valid ``request_id``
        """
        url = self.bridge_url.endpoint("request")
        try:
            response = await self.client.post(
                url,
                json=envelope.model_dump(),
                headers={"User-Agent": self.user_agent, "Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            logger.warning("Bridge %s did not return an HTTP response: %s", self.bridge_url, e)
            raise UnrecognizedBridgeResponseError(
                f"Bridge {self.bridge_url} did not return an HTTP response: {e}"
            ) from e

        if not response.is_success:
            logger.warning(
                "Bridge %s rejected request with HTTP %s", self.bridge_url, response.status_code
            )
            raise BridgeRequestFailedError(response.status_code)

        try:
            created = CreateRequestResponse.model_validate(response.json())
        except ValueError as e:
            raise UnexpectedResponseError(f"Malformed create request response: {e}") from e

        return created.request_id

    async def fetch_status(self, request_id: UUID) -> BridgeQueryResponse:
        """
        Fetch the current status of a request.

        Raises:
            ConnectionFailedError: transport failure or non-2xx status
            UnexpectedResponseError: unknown ``status`` value, ``completed``
                without a response envelope, or an unparseable body
        """
        url = self.bridge_url.endpoint("response", str(request_id))
        try:
            response = await self.client.get(url, headers={"User-Agent": self.user_agent})
        except httpx.TransportError as e:
            logger.warning("Status poll for %s failed: %s", request_id, e)
            raise ConnectionFailedError(f"Status poll for {request_id} failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "Status poll for %s returned HTTP %s", request_id, response.status_code
            )
            raise ConnectionFailedError(
                f"Status poll for {request_id} returned HTTP {response.status_code}"
            )

        try:
            return BridgeQueryResponse.model_validate(response.json())
        except ValueError as e:
            raise UnexpectedResponseError(f"Malformed status response: {e}") from e
