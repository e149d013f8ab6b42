"""
Wallet Bridge client

Lets a relying party ask a user's mobile wallet for a credential proof without
a direct connection between the two. Requests and responses are AES-256-GCM
envelopes stored on a relay under a single-use request id; the wallet gets the
key through the connector URL (QR code or deep link).

Components:
- bridge_url: relay URL validation and the default relay
- crypto: envelope encryption and response decoding
- transport: relay HTTP endpoints (create request, fetch status)
- session: session establishment, connector URL, polling
- stream: cancellable status stream
- models: wire documents, request payloads and result models

Example::

    session = await request_verification("app_staging_123", "vote")
    print(session.connector_url)
    async with session, session.status() as stream:
        async for status in stream:
            print(status)
"""

from .bridge_url import DEFAULT_BRIDGE_URL, BridgeURL, BridgeURLError, BridgeURLErrorKind
from .config import BridgeSettings, get_settings
from .crypto import (
    SessionKeyMaterial,
    decode_bridge_response,
    decrypt_envelope,
    encode_signal,
    encrypt_payload,
)
from .errors import (
    AppErrorCode,
    BridgeRequestFailedError,
    BridgeTransportError,
    ConnectionFailedError,
    EnvelopeAuthenticationError,
    EnvelopeDecodeError,
    EnvelopeEncodeError,
    EnvelopeError,
    InvalidAppIDError,
    UnexpectedResponseError,
    UnrecognizedBridgeResponseError,
    WalletBridgeError,
)
from .models import (
    AppID,
    BridgeQueryResponse,
    CredentialCategory,
    CredentialCategoryProof,
    CredentialCategoryRequest,
    CredentialType,
    Envelope,
    LinkType,
    Proof,
    VerificationLevel,
    VerificationRequest,
)
from .session import BridgeSession, request_credential_categories, request_verification
from .status import (
    AwaitingConfirmation,
    Confirmed,
    Failed,
    Status,
    WaitingForConnection,
    is_terminal,
    same_state,
)
from .stream import StatusStream
from .transport import RelayTransport

__version__ = "1.0.0"

__all__ = [
    # Sessions
    "BridgeSession",
    "StatusStream",
    "RelayTransport",
    "request_verification",
    "request_credential_categories",
    # Relay URL
    "BridgeURL",
    "BridgeURLError",
    "BridgeURLErrorKind",
    "DEFAULT_BRIDGE_URL",
    # Envelopes
    "Envelope",
    "SessionKeyMaterial",
    "encrypt_payload",
    "decrypt_envelope",
    "decode_bridge_response",
    "encode_signal",
    # Status
    "Status",
    "WaitingForConnection",
    "AwaitingConfirmation",
    "Confirmed",
    "Failed",
    "same_state",
    "is_terminal",
    # Models
    "AppID",
    "BridgeQueryResponse",
    "CredentialCategory",
    "CredentialCategoryProof",
    "CredentialCategoryRequest",
    "CredentialType",
    "LinkType",
    "Proof",
    "VerificationLevel",
    "VerificationRequest",
    # Errors
    "AppErrorCode",
    "WalletBridgeError",
    "InvalidAppIDError",
    "EnvelopeError",
    "EnvelopeEncodeError",
    "EnvelopeDecodeError",
    "EnvelopeAuthenticationError",
    "BridgeTransportError",
    "ConnectionFailedError",
    "BridgeRequestFailedError",
    "UnrecognizedBridgeResponseError",
    "UnexpectedResponseError",
    # Configuration
    "BridgeSettings",
    "get_settings",
]
