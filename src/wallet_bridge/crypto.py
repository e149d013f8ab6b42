"""
Envelope encryption for Wallet Bridge requests and responses

Payloads are JSON documents sealed with AES-256-GCM. On the wire an envelope
is ``{"iv": b64(nonce), "payload": b64(ciphertext || tag)}``. The relay only
ever sees envelopes; the key travels to the wallet inside the connector URL.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
from dataclasses import dataclass, field
from typing import Any, TypeVar

from Crypto.Hash import keccak
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import BaseModel, ValidationError

from .errors import (
    AppErrorCode,
    EnvelopeAuthenticationError,
    EnvelopeDecodeError,
    EnvelopeEncodeError,
)
from .models import Envelope

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16

ResultT = TypeVar("ResultT", bound=BaseModel)


@dataclass(frozen=True)
class SessionKeyMaterial:
    """AES-256 key and single-use GCM nonce owned by one bridge session."""

    key: bytes = field(repr=False)
    nonce: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.key) != KEY_SIZE:
            raise ValueError(f"Session key must be {KEY_SIZE} bytes, got {len(self.key)}")
        if len(self.nonce) != NONCE_SIZE:
            raise ValueError(f"Session nonce must be {NONCE_SIZE} bytes, got {len(self.nonce)}")

    @classmethod
    def generate(cls) -> SessionKeyMaterial:
        return cls(key=os.urandom(KEY_SIZE), nonce=os.urandom(NONCE_SIZE))

    @property
    def encoded_key(self) -> str:
        """Standard base64 of the key, as embedded in the connector URL."""
        return base64.b64encode(self.key).decode("ascii")


def _to_json_bytes(payload: Any) -> bytes:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", exclude_none=True)
    try:
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EnvelopeEncodeError(f"Payload is not JSON serializable: {e}") from e


def encrypt_payload(payload: Any, key: bytes, nonce: bytes) -> Envelope:
    """
    Serialize ``payload`` to JSON and seal it into an envelope.

    Args:
        payload: a pydantic model or any JSON-serializable value
        key: 32-byte AES key
        nonce: 12-byte GCM nonce, never reused with the same key

    Returns:
        The transport envelope
    """
    plaintext = _to_json_bytes(payload)

    try:
        encryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    except ValueError as e:
        raise EnvelopeEncodeError(f"Payload encryption failed: {e}") from e

    return Envelope(
        iv=base64.b64encode(nonce).decode("ascii"),
        payload=base64.b64encode(ciphertext + encryptor.tag).decode("ascii"),
    )


def _b64decode(value: str, name: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EnvelopeDecodeError(f"Envelope {name} is not valid base64: {e}") from e


def decrypt_envelope(envelope: Envelope, key: bytes) -> Any:
    """
    Open an envelope and return the decoded JSON document.

    Raises:
        EnvelopeDecodeError: malformed base64, nonce length, payload or JSON
        EnvelopeAuthenticationError: the GCM tag does not verify under ``key``
    """
    nonce = _b64decode(envelope.iv, "iv")
    sealed = _b64decode(envelope.payload, "payload")

    if len(nonce) != NONCE_SIZE:
        raise EnvelopeDecodeError(f"Envelope nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
    if len(sealed) < TAG_SIZE:
        raise EnvelopeDecodeError("Envelope payload is shorter than the authentication tag")

    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]

    try:
        decryptor = Cipher(algorithms.AES(key), modes.GCM(nonce, tag)).decryptor()
        plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    except InvalidTag as e:
        raise EnvelopeAuthenticationError("Envelope authentication failed") from e
    except ValueError as e:
        raise EnvelopeDecodeError(f"Envelope could not be decrypted: {e}") from e

    try:
        return json.loads(plaintext)
    except ValueError as e:
        raise EnvelopeDecodeError(f"Envelope plaintext is not valid JSON: {e}") from e


def decode_bridge_response(document: Any, result_type: type[ResultT]) -> ResultT | AppErrorCode:
    """
    Interpret a decrypted wallet response.

    A document carrying ``error_code`` is an error outcome; anything else must
    validate against ``result_type``. Error codes this client does not know map
    to ``AppErrorCode.GENERIC_ERROR``.
    """
    if isinstance(document, dict) and "error_code" in document:
        return AppErrorCode.from_wire(str(document["error_code"]))

    try:
        return result_type.model_validate(document)
    except ValidationError as e:
        raise EnvelopeDecodeError(
            f"Response matches neither {result_type.__name__} nor an error document"
        ) from e


def encode_signal(signal: str) -> str:
    """
    Hash a signal into the field element the wallet expects.

    The UTF-8 bytes are hashed with keccak-256 and the digest is shifted right
    by 8 bits so it fits the proof system's field. The result is ``0x`` followed
    by 64 lowercase hex digits.
    """
    digest = keccak.new(digest_bits=256, data=signal.encode("utf-8")).digest()
    return f"0x{int.from_bytes(digest, 'big') >> 8:064x}"
