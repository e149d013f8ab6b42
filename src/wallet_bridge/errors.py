"""
Error codes and exceptions for the Wallet Bridge client.

Two families live here:

- ``AppErrorCode``: the error codes a wallet (or the client itself) reports as
  a terminal protocol outcome. These travel as values inside a ``Failed``
  status, never as exceptions.
- ``WalletBridgeError`` and its subclasses: client malfunctions (bad input,
  broken envelopes, relay failures) that abort the current operation.
"""

from __future__ import annotations

from enum import Enum


class AppErrorCode(str, Enum):
    """Error codes reported by the wallet or produced by the client."""

    CONNECTION_FAILED = "connection_failed"
    VERIFICATION_REJECTED = "verification_rejected"
    MAX_VERIFICATIONS_REACHED = "max_verifications_reached"
    CREDENTIAL_UNAVAILABLE = "credential_unavailable"
    MALFORMED_REQUEST = "malformed_request"
    INVALID_NETWORK = "invalid_network"
    INCLUSION_PROOF_FAILED = "inclusion_proof_failed"
    INCLUSION_PROOF_PENDING = "inclusion_proof_pending"
    UNEXPECTED_RESPONSE = "unexpected_response"
    FAILED_BY_HOST_APP = "failed_by_host_app"
    BRIDGE_FAILED_TO_ADD_REQUEST = "bridge_failed_to_add_request"
    UNRECOGNIZED_BRIDGE_RESPONSE = "unrecognized_bridge_response"
    GENERIC_ERROR = "generic_error"

    # Client-side outcomes, never sent by a wallet
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def from_wire(cls, value: str) -> AppErrorCode:
        """Map a wire value to a code, falling back to ``GENERIC_ERROR``."""
        try:
            return cls(value)
        except ValueError:
            return cls.GENERIC_ERROR


_DESCRIPTIONS = {
    AppErrorCode.CONNECTION_FAILED: (
        "Failed to connect to the wallet. Please create a new session and try again."
    ),
    AppErrorCode.VERIFICATION_REJECTED: "The user rejected the verification request in the wallet.",
    AppErrorCode.MAX_VERIFICATIONS_REACHED: (
        "The user already verified the maximum number of times for this action."
    ),
    AppErrorCode.CREDENTIAL_UNAVAILABLE: (
        "The user does not have the verification level required by this app."
    ),
    AppErrorCode.MALFORMED_REQUEST: (
        "There was a problem with this request. Please try again or contact the app owner."
    ),
    AppErrorCode.INVALID_NETWORK: (
        "Invalid network. If you are the app owner, check the app's environment settings."
    ),
    AppErrorCode.INCLUSION_PROOF_FAILED: (
        "There was an issue fetching the user's credential. Please try again."
    ),
    AppErrorCode.INCLUSION_PROOF_PENDING: (
        "The user's identity is still being registered. Please wait a few minutes and try again."
    ),
    AppErrorCode.UNEXPECTED_RESPONSE: "Unexpected response from the user's wallet. Please try again.",
    AppErrorCode.FAILED_BY_HOST_APP: (
        "Verification failed by the app. Please contact the app owner for details."
    ),
    AppErrorCode.BRIDGE_FAILED_TO_ADD_REQUEST: (
        "Wallet Bridge failed to add the request. Please try again."
    ),
    AppErrorCode.UNRECOGNIZED_BRIDGE_RESPONSE: (
        "Wallet Bridge returned something other than HTTP/S. Use a different bridge."
    ),
    AppErrorCode.GENERIC_ERROR: "Something unexpected went wrong. Please try again.",
    AppErrorCode.TIMEOUT: "Verification timed out before completing.",
    AppErrorCode.CANCELLED: "Verification was cancelled before completing.",
}


class WalletBridgeError(Exception):
    """Base exception for Wallet Bridge client errors."""

    def __init__(self, message: str, error_code: AppErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class InvalidAppIDError(WalletBridgeError):
    """Raised when an app id does not have the ``app_`` prefix."""

    def __init__(self, app_id: str) -> None:
        super().__init__(f"Invalid app id: {app_id!r}")
        self.app_id = app_id


class EnvelopeError(WalletBridgeError):
    """Base exception for envelope encoding/decoding errors."""


class EnvelopeEncodeError(EnvelopeError):
    """Raised when a payload cannot be serialized or encrypted."""


class EnvelopeDecodeError(EnvelopeError):
    """Raised when an envelope or its plaintext is malformed."""


class EnvelopeAuthenticationError(EnvelopeError):
    """Raised when the AEAD tag does not verify (wrong key or tampered data)."""


class BridgeTransportError(WalletBridgeError):
    """Base exception for relay communication errors."""


class ConnectionFailedError(BridgeTransportError):
    """Raised when polling the relay fails or returns a non-2xx status."""

    def __init__(self, message: str = "Failed to fetch request status from the bridge.") -> None:
        super().__init__(message, AppErrorCode.CONNECTION_FAILED)


class BridgeRequestFailedError(BridgeTransportError):
    """Raised when the relay rejects a new request."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        super().__init__(
            message or f"Bridge failed to add the request (HTTP {status_code}).",
            AppErrorCode.BRIDGE_FAILED_TO_ADD_REQUEST,
        )
        self.status_code = status_code


class UnrecognizedBridgeResponseError(BridgeTransportError):
    """Raised when the relay does not answer with a usable HTTP response."""

    def __init__(self, message: str = "Bridge returned an unrecognized response.") -> None:
        super().__init__(message, AppErrorCode.UNRECOGNIZED_BRIDGE_RESPONSE)


class UnexpectedResponseError(BridgeTransportError):
    """Raised when a relay response does not follow the wire contract."""

    def __init__(self, message: str = "Unexpected response from the bridge.") -> None:
        super().__init__(message, AppErrorCode.UNEXPECTED_RESPONSE)
