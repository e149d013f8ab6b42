"""
Wallet Bridge sessions.

A session sends one encrypted request to the relay and then follows it until
the wallet answers:

1. ``BridgeSession.open`` generates a fresh AES-256 key and nonce, encrypts the
   request payload and stores it on the relay, which assigns a request id.
2. ``connector_url`` is the link the wallet opens (QR code or deep link). It
   carries the link type, the request id, the key and, for a non-default
   relay, the relay URL.
3. ``poll_once`` / ``status`` / ``wait_for_completion`` follow the request and
   decrypt the wallet's answer when it arrives.

Key material lives only in the session object and is never logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic, TypeVar
from urllib.parse import quote
from uuid import UUID

import httpx
from pydantic import BaseModel

from .bridge_url import DEFAULT_BRIDGE_URL, BridgeURL
from .config import BridgeSettings, get_settings
from .crypto import (
    SessionKeyMaterial,
    decode_bridge_response,
    decrypt_envelope,
    encode_signal,
    encrypt_payload,
)
from .errors import AppErrorCode
from .models import (
    AppID,
    CredentialCategory,
    CredentialCategoryProof,
    CredentialCategoryRequest,
    LinkType,
    Proof,
    VerificationLevel,
    VerificationRequest,
)
from .status import AwaitingConfirmation, Confirmed, Failed, Status, WaitingForConnection
from .stream import StatusStream
from .transport import RelayTransport

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

CONNECT_BASE_URL = "https://worldcoin.org/verify"


class BridgeSession(Generic[ResultT]):
    """One request/response exchange with a wallet through the relay."""

    def __init__(
        self,
        request_id: UUID,
        key_material: SessionKeyMaterial,
        result_type: type[ResultT],
        transport: RelayTransport,
        link_type: LinkType | str = LinkType.VERIFY,
        poll_interval: float = 3.0,
        connect_base_url: str = CONNECT_BASE_URL,
        owns_transport: bool = False,
    ) -> None:
        self.request_id = request_id
        self.result_type = result_type
        self.transport = transport
        self.link_type = LinkType(link_type)
        self.poll_interval = poll_interval
        self.connect_base_url = connect_base_url
        self._key_material = key_material
        self._owns_transport = owns_transport

    @classmethod
    async def open(
        cls,
        payload: Any,
        result_type: type[ResultT],
        bridge_url: BridgeURL | str | None = None,
        link_type: LinkType | str = LinkType.VERIFY,
        *,
        transport: RelayTransport | None = None,
        client: httpx.AsyncClient | None = None,
        settings: BridgeSettings | None = None,
    ) -> BridgeSession[ResultT]:
        """
        Create a new session with the Wallet Bridge.

        Args:
            payload: request document for the wallet (pydantic model or JSON value)
            result_type: model the wallet's success response is decoded into
            bridge_url: relay to use; defaults to the configured relay
            link_type: operation tag placed in the connector URL
            transport: ready-made relay transport; its relay wins over ``bridge_url``
            client: HTTP client for a transport created here
            settings: overrides the cached environment settings

        Raises:
            BridgeURLError: ``bridge_url`` is not an acceptable relay
            EnvelopeEncodeError: ``payload`` cannot be serialized
            BridgeTransportError: the relay did not accept the request
        """
        settings = settings or get_settings()
        owns_transport = transport is None
        if transport is None:
            relay = (
                BridgeURL.parse(bridge_url)
                if bridge_url is not None
                else settings.default_bridge_url()
            )
            transport = RelayTransport(
                relay,
                client=client,
                user_agent=settings.user_agent,
                timeout=settings.request_timeout_seconds,
            )

        key_material = SessionKeyMaterial.generate()
        try:
            envelope = encrypt_payload(payload, key_material.key, key_material.nonce)
            request_id = await transport.create_request(envelope)
        except BaseException:
            if owns_transport:
                await transport.aclose()
            raise

        logger.info("Opened bridge request %s on %s", request_id, transport.bridge_url)

        return cls(
            request_id=request_id,
            key_material=key_material,
            result_type=result_type,
            transport=transport,
            link_type=link_type,
            poll_interval=settings.poll_interval_seconds,
            connect_base_url=settings.connect_base_url,
            owns_transport=owns_transport,
        )

    async def __aenter__(self) -> BridgeSession[ResultT]:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self.transport.aclose()

    @property
    def bridge_url(self) -> BridgeURL:
        return self.transport.bridge_url

    @property
    def connector_url(self) -> str:
        """The URL the wallet opens to pick up this request."""
        # base64 padding and "+/" stay literal in the key; only the relay URL is escaped
        params = [
            ("t", quote(self.link_type.value, safe="")),
            ("i", str(self.request_id).upper()),
            ("k", quote(self._key_material.encoded_key, safe="=+/")),
        ]
        if self.bridge_url != DEFAULT_BRIDGE_URL:
            params.append(("b", quote(str(self.bridge_url), safe="")))

        query = "&".join(f"{name}={value}" for name, value in params)
        return f"{self.connect_base_url}?{query}"

    @property
    def verification_url(self) -> str:
        return self.connector_url

    async def poll_once(self) -> Status:
        """
        Fetch the request status once and map it to a ``Status``.

        A ``completed`` request is decrypted here: the wallet's answer becomes
        ``Confirmed(result)`` or, for an error document, ``Failed(code)``.

        Raises:
            BridgeTransportError: the relay could not be queried
            EnvelopeError: the wallet's answer could not be opened or decoded
        """
        response = await self.transport.fetch_status(self.request_id)

        if response.status == "initialized":
            return WaitingForConnection()
        if response.status == "retrieved":
            return AwaitingConfirmation()

        document = decrypt_envelope(response.response, self._key_material.key)
        outcome = decode_bridge_response(document, self.result_type)

        if isinstance(outcome, AppErrorCode):
            logger.info("Bridge request %s failed: %s", self.request_id, outcome.value)
            return Failed(outcome)

        logger.info("Bridge request %s confirmed", self.request_id)
        return Confirmed(outcome)

    def status(self, poll_interval: float | None = None) -> StatusStream[ResultT]:
        """
        Follow the request as a stream of status transitions.

        The stream starts with ``WaitingForConnection``, suppresses repeated
        states and ends after ``Confirmed`` or ``Failed``. Close it (``async
        with`` or ``aclose()``) to stop polling early.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        return StatusStream(self.poll_once, interval)

    async def wait_for_completion(
        self,
        timeout: float | None = None,
        *,
        poll_interval: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Status:
        """
        Poll until the request reaches a terminal status.

        Returns ``Failed(AppErrorCode.TIMEOUT)`` when ``timeout`` seconds pass
        first, and ``Failed(AppErrorCode.CANCELLED)`` when ``cancel_event`` is
        set first. Relay and envelope errors are raised as usual.
        """
        async with self.status(poll_interval) as stream:
            drain = asyncio.ensure_future(_last_status(stream))
            waiters: set[asyncio.Future[Any]] = {drain}
            cancel_waiter = None
            if cancel_event is not None:
                cancel_waiter = asyncio.ensure_future(cancel_event.wait())
                waiters.add(cancel_waiter)

            try:
                done, _ = await asyncio.wait(
                    waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                for waiter in waiters:
                    waiter.cancel()
                # a poll error stays on drain and is re-raised below
                await asyncio.gather(*waiters, return_exceptions=True)

        if drain in done:
            return drain.result()
        if cancel_waiter is not None and cancel_waiter in done:
            logger.info("Bridge request %s cancelled by caller", self.request_id)
            return Failed(AppErrorCode.CANCELLED)

        logger.info("Bridge request %s timed out after %ss", self.request_id, timeout)
        return Failed(AppErrorCode.TIMEOUT)


async def _last_status(stream: StatusStream[Any]) -> Status:
    last: Status = WaitingForConnection()
    async for status in stream:
        last = status
    return last


async def request_verification(
    app_id: AppID | str,
    action: str,
    verification_level: VerificationLevel = VerificationLevel.ORB,
    bridge_url: BridgeURL | str | None = None,
    signal: str = "",
    action_description: str | None = None,
    **session_options: Any,
) -> BridgeSession[Proof]:
    """
    Open a session asking the wallet for a uniqueness proof.

    ``signal`` is sent hashed with :func:`encode_signal`.
    """
    app_id = app_id if isinstance(app_id, AppID) else AppID(app_id)
    payload = VerificationRequest.create(
        app_id,
        action,
        signal=encode_signal(signal),
        action_description=action_description,
        verification_level=verification_level,
    )
    return await BridgeSession.open(
        payload, Proof, bridge_url, LinkType.VERIFY, **session_options
    )


async def request_credential_categories(
    app_id: AppID | str,
    action: str,
    credential_categories: set[CredentialCategory] | list[CredentialCategory],
    bridge_url: BridgeURL | str | None = None,
    signal: str = "",
    action_description: str | None = None,
    **session_options: Any,
) -> BridgeSession[CredentialCategoryProof]:
    """Open a session asking for proof of a credential in any of the given categories."""
    app_id = app_id if isinstance(app_id, AppID) else AppID(app_id)
    payload = CredentialCategoryRequest.create(
        app_id,
        action,
        credential_categories,
        signal=encode_signal(signal),
        action_description=action_description,
    )
    return await BridgeSession.open(
        payload, CredentialCategoryProof, bridge_url, LinkType.CREDENTIAL, **session_options
    )
