"""
Pydantic models for the Wallet Bridge wire format.

Covers the relay envelope and status documents, the request payloads a
relying party sends to the wallet, and the result documents the wallet sends
back. Proof contents are produced by the wallet's proof engine and are carried
here as opaque strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from .errors import InvalidAppIDError

RelayStatus = Literal["initialized", "retrieved", "completed"]


class LinkType(str, Enum):
    """Kind of operation encoded in the connector URL (``t`` parameter)."""

    VERIFY = "wld"
    CREDENTIAL = "cred"


class CredentialType(str, Enum):
    """The strongest credential a user has been verified with."""

    ORB = "orb"
    DEVICE = "device"
    DOCUMENT = "document"
    SECURE_DOCUMENT = "secure_document"


class VerificationLevel(str, Enum):
    """The minimum verification level accepted by the relying party."""

    ORB = "orb"
    DEVICE = "device"
    DOCUMENT = "document"
    SECURE_DOCUMENT = "secure_document"

    def credential_types(self) -> list[CredentialType]:
        """Credential types that satisfy this level, strongest first."""
        return list(_ACCEPTED_CREDENTIALS[self])


_ACCEPTED_CREDENTIALS = {
    VerificationLevel.ORB: (CredentialType.ORB,),
    VerificationLevel.DEVICE: (CredentialType.ORB, CredentialType.DEVICE),
    VerificationLevel.SECURE_DOCUMENT: (CredentialType.ORB, CredentialType.SECURE_DOCUMENT),
    VerificationLevel.DOCUMENT: (
        CredentialType.DOCUMENT,
        CredentialType.SECURE_DOCUMENT,
        CredentialType.ORB,
    ),
}


class CredentialCategory(str, Enum):
    """Credential categories a holder can prove membership of."""

    PERSONHOOD = "personhood"
    SECURE_DOCUMENT = "secure_document"
    DOCUMENT = "document"


@dataclass(frozen=True, slots=True)
class AppID:
    """A relying party's app identifier."""

    raw_id: str

    def __post_init__(self) -> None:
        if not self.raw_id.startswith("app_"):
            raise InvalidAppIDError(self.raw_id)

    @property
    def is_staging(self) -> bool:
        return self.raw_id.startswith("app_staging_")

    def __str__(self) -> str:
        return self.raw_id


# Relay wire documents


class Envelope(BaseModel):
    """An AEAD-encrypted JSON document as carried by the relay."""

    model_config = ConfigDict(frozen=True)

    iv: str = Field(description="Base64 encoded 12-byte AES-GCM nonce")
    payload: str = Field(description="Base64 encoded ciphertext followed by the 16-byte tag")


class CreateRequestResponse(BaseModel):
    """Body returned by ``POST /request``."""

    request_id: UUID


class BridgeQueryResponse(BaseModel):
    """Body returned by ``GET /response/{request_id}``."""

    status: RelayStatus
    response: Envelope | None = None

    @model_validator(mode="after")
    def _completed_requires_response(self) -> BridgeQueryResponse:
        if self.status == "completed" and self.response is None:
            raise ValueError("completed status without a response envelope")
        return self


# Request payloads


class VerificationRequest(BaseModel):
    """Request for a uniqueness proof at a minimum verification level."""

    app_id: str
    action: str
    signal: str
    action_description: str | None = None
    verification_level: VerificationLevel
    credential_types: list[CredentialType]

    @classmethod
    def create(
        cls,
        app_id: AppID,
        action: str,
        signal: str = "",
        action_description: str | None = None,
        verification_level: VerificationLevel = VerificationLevel.ORB,
    ) -> VerificationRequest:
        return cls(
            app_id=app_id.raw_id,
            action=action,
            signal=signal,
            action_description=action_description,
            verification_level=verification_level,
            credential_types=verification_level.credential_types(),
        )


class CredentialCategoryRequest(BaseModel):
    """Request for a proof of holding a credential in any of several categories."""

    app_id: str
    action: str
    signal: str
    action_description: str | None = None
    credential_categories: list[CredentialCategory]

    @classmethod
    def create(
        cls,
        app_id: AppID,
        action: str,
        credential_categories: set[CredentialCategory] | list[CredentialCategory],
        signal: str = "",
        action_description: str | None = None,
    ) -> CredentialCategoryRequest:
        # sorted so identical category sets serialize identically
        categories = sorted(set(credential_categories), key=lambda category: category.value)
        return cls(
            app_id=app_id.raw_id,
            action=action,
            signal=signal,
            action_description=action_description,
            credential_categories=categories,
        )


# Result documents


class Proof(BaseModel):
    """A uniqueness proof returned by the wallet."""

    model_config = ConfigDict(populate_by_name=True)

    proof: str
    merkle_root: str
    nullifier_hash: str
    # Older wallets send the level as ``credential_type``
    verification_level: CredentialType = Field(
        validation_alias=AliasChoices("credential_type", "verification_level")
    )

    @property
    def credential_type(self) -> CredentialType:
        return self.verification_level


class CredentialCategoryProof(BaseModel):
    """A credential category proof returned by the wallet."""

    proof: str
    merkle_root: str
    nullifier_hash: str
    credential_category: CredentialCategory
