import base64
import json
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wallet_bridge import (
    AppErrorCode,
    Envelope,
    EnvelopeAuthenticationError,
    EnvelopeDecodeError,
    EnvelopeEncodeError,
    Proof,
    SessionKeyMaterial,
    decode_bridge_response,
    decrypt_envelope,
    encode_signal,
    encrypt_payload,
)
from wallet_bridge.crypto import NONCE_SIZE, TAG_SIZE

from tests.fixtures.relay import PROOF_DOCUMENT


@pytest.fixture
def key_material():
    return SessionKeyMaterial.generate()


@pytest.mark.parametrize(
    "payload",
    [
        {"app_id": "app_staging_123", "action": "vote", "signal": ""},
        ["a", 1, None, True],
        "plain string",
        {"nested": {"emoji": "✓", "list": [1.5, {"k": "v"}]}},
    ],
)
def test_encrypt_then_decrypt_returns_same_document(key_material, payload):
    envelope = encrypt_payload(payload, key_material.key, key_material.nonce)

    assert decrypt_envelope(envelope, key_material.key) == payload


def test_envelope_layout_is_ciphertext_followed_by_tag(key_material):
    payload = {"action": "vote"}
    envelope = encrypt_payload(payload, key_material.key, key_material.nonce)

    assert base64.b64decode(envelope.iv) == key_material.nonce
    plaintext = json.dumps(payload, separators=(",", ":")).encode()
    sealed = base64.b64decode(envelope.payload)
    assert len(sealed) == len(plaintext) + TAG_SIZE

    # Standard AES-GCM (ciphertext || tag) interoperates with the envelope
    aesgcm = AESGCM(key_material.key)
    assert aesgcm.decrypt(key_material.nonce, sealed, None) == plaintext
    assert sealed == aesgcm.encrypt(key_material.nonce, plaintext, None)


def test_model_payload_omits_unset_optionals(key_material):
    proof = Proof.model_validate(PROOF_DOCUMENT)
    envelope = encrypt_payload(proof, key_material.key, key_material.nonce)

    assert decrypt_envelope(envelope, key_material.key) == PROOF_DOCUMENT


def test_unserializable_payload_raises_encode_error(key_material):
    with pytest.raises(EnvelopeEncodeError):
        encrypt_payload({"when": object()}, key_material.key, key_material.nonce)


def test_wrong_key_fails_authentication(key_material):
    envelope = encrypt_payload({"a": 1}, key_material.key, key_material.nonce)

    with pytest.raises(EnvelopeAuthenticationError):
        decrypt_envelope(envelope, os.urandom(32))


def test_tampered_ciphertext_fails_authentication(key_material):
    envelope = encrypt_payload({"a": 1}, key_material.key, key_material.nonce)
    sealed = bytearray(base64.b64decode(envelope.payload))
    sealed[0] ^= 0x01
    tampered = Envelope(iv=envelope.iv, payload=base64.b64encode(bytes(sealed)).decode())

    with pytest.raises(EnvelopeAuthenticationError):
        decrypt_envelope(tampered, key_material.key)


def test_wrong_nonce_length_is_a_decode_error(key_material):
    envelope = encrypt_payload({"a": 1}, key_material.key, key_material.nonce)
    short_iv = Envelope(iv=base64.b64encode(b"\x00" * 8).decode(), payload=envelope.payload)

    with pytest.raises(EnvelopeDecodeError):
        decrypt_envelope(short_iv, key_material.key)


def test_payload_shorter_than_tag_is_a_decode_error(key_material):
    envelope = Envelope(
        iv=base64.b64encode(key_material.nonce).decode(),
        payload=base64.b64encode(b"\x00" * (TAG_SIZE - 1)).decode(),
    )

    with pytest.raises(EnvelopeDecodeError):
        decrypt_envelope(envelope, key_material.key)


def test_invalid_base64_is_a_decode_error(key_material):
    with pytest.raises(EnvelopeDecodeError):
        decrypt_envelope(Envelope(iv="not base64!", payload="AAAA"), key_material.key)


def test_non_json_plaintext_is_a_decode_error(key_material):
    sealed = AESGCM(key_material.key).encrypt(key_material.nonce, b"\xff not json", None)
    envelope = Envelope(
        iv=base64.b64encode(key_material.nonce).decode(),
        payload=base64.b64encode(sealed).decode(),
    )

    with pytest.raises(EnvelopeDecodeError):
        decrypt_envelope(envelope, key_material.key)


def test_key_material_lengths_are_checked():
    with pytest.raises(ValueError):
        SessionKeyMaterial(key=b"\x00" * 16, nonce=b"\x00" * NONCE_SIZE)
    with pytest.raises(ValueError):
        SessionKeyMaterial(key=b"\x00" * 32, nonce=b"\x00" * 16)


def test_key_material_is_fresh_and_hidden_from_repr():
    first = SessionKeyMaterial.generate()
    second = SessionKeyMaterial.generate()

    assert first.key != second.key
    assert first.nonce != second.nonce
    assert first.encoded_key not in repr(first)


def test_decode_error_document_gives_error_code():
    outcome = decode_bridge_response({"error_code": "verification_rejected"}, Proof)

    assert outcome is AppErrorCode.VERIFICATION_REJECTED


def test_decode_unknown_error_code_maps_to_generic_error():
    outcome = decode_bridge_response({"error_code": "solar_flare"}, Proof)

    assert outcome is AppErrorCode.GENERIC_ERROR


def test_decode_success_document_gives_result_model():
    outcome = decode_bridge_response(PROOF_DOCUMENT, Proof)

    assert isinstance(outcome, Proof)
    assert outcome.nullifier_hash == PROOF_DOCUMENT["nullifier_hash"]


def test_decode_unrecognized_document_is_a_decode_error():
    with pytest.raises(EnvelopeDecodeError):
        decode_bridge_response({"unexpected": True}, Proof)


def test_encode_signal_empty_string():
    assert (
        encode_signal("")
        == "0x00c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a4"
    )


@pytest.mark.parametrize("signal", ["0x12312", "user-42", "✓ unicode"])
def test_encode_signal_is_a_shifted_keccak_digest(signal):
    encoded = encode_signal(signal)

    assert encoded.startswith("0x00")
    assert len(encoded) == 66
    assert int(encoded, 16).bit_length() <= 248
    assert encoded == encode_signal(signal)
    assert encoded != encode_signal("")
