"""
Claim Verification

Decides whether a fetched attestation proves an on-chain identity claim.

The encrypted proof inside the attestation must decrypt with the shared key
and state the same identity type, identity, sender and identity hash as the
claim. The identity is taken from the fetched document's owner, not from the
claim, and the hash is recomputed from it rather than trusted from the
payload. A forged payload therefore cannot bind an identity the hosted
document does not itself assert.

The on-chain claim must commit to that same recomputed hash. An attestation
proves only its owner's identity and settles no other claim.

The verifier never raises for input-derived reasons: every rejection is a
VerificationOutcome with success=False.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import DecryptionError, EvidenceError, FetchError, MalformedEvidence, WrongAttestationKind
from .hashing import hash_identity, identity_hashes_equal
from .models import DecryptedProof, EvidenceDocument, IdentityEvent
from .proof_cipher import decrypt_proof

DEFAULT_ATTESTATION_KIND = "github"


class FailureReason(str, Enum):
    """Why an identity event was denied."""
    FETCH_ERROR = "FETCH_ERROR"
    MALFORMED_EVIDENCE = "MALFORMED_EVIDENCE"
    WRONG_ATTESTATION_KIND = "WRONG_ATTESTATION_KIND"
    DECRYPTION_OR_PARSE_ERROR = "DECRYPTION_OR_PARSE_ERROR"
    INVALID_IDENTITY_TYPE = "INVALID_IDENTITY_TYPE"
    INVALID_IDENTITY = "INVALID_IDENTITY"
    INVALID_SENDER = "INVALID_SENDER"
    INVALID_IDENTITY_HASH = "INVALID_IDENTITY_HASH"
    CLAIM_HASH_MISMATCH = "CLAIM_HASH_MISMATCH"


_EVIDENCE_REASONS = (
    (FetchError, FailureReason.FETCH_ERROR),
    (WrongAttestationKind, FailureReason.WRONG_ATTESTATION_KIND),
    (MalformedEvidence, FailureReason.MALFORMED_EVIDENCE),
)


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verifying one identity event."""
    success: bool
    event: IdentityEvent
    identity_hash: str
    error: Optional[str] = None
    reason: Optional[FailureReason] = None

    @classmethod
    def approved(cls, event: IdentityEvent) -> 'VerificationOutcome':
        return cls(success=True, event=event, identity_hash=event.identity_hash)

    @classmethod
    def denied(cls, event: IdentityEvent, reason: FailureReason, error: str) -> 'VerificationOutcome':
        return cls(success=False, event=event, identity_hash=event.identity_hash,
                   error=error, reason=reason)

    @classmethod
    def from_evidence_error(cls, event: IdentityEvent, exc: EvidenceError) -> 'VerificationOutcome':
        for exc_type, reason in _EVIDENCE_REASONS:
            if isinstance(exc, exc_type):
                return cls.denied(event, reason, str(exc))
        return cls.denied(event, FailureReason.MALFORMED_EVIDENCE, str(exc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "identity_hash": self.identity_hash,
            "attestation": self.event.attestation,
            "sender": self.event.sender,
            "reason": self.reason.value if self.reason else None,
            "error": self.error,
        }


class ClaimVerifier:
    """
    Checks a fetched attestation against an identity event.

    Invariants, checked in order (first violation wins):
    1. proof identity type == configured attestation kind
    2. proof identity == document owner login
    3. proof sender == event sender
    4. proof identity hash == hash(attestation kind, document owner login)
    5. event identity hash == that same recomputed hash
    """

    def __init__(self, encryption_key: str, attestation_kind: str = DEFAULT_ATTESTATION_KIND):
        if not encryption_key:
            raise ValueError("encryption_key must not be empty")
        self._encryption_key = encryption_key
        self.attestation_kind = attestation_kind

    def decrypt(self, payload: str) -> DecryptedProof:
        """
        Raises:
            DecryptionError: payload cannot be decrypted or parsed
        """
        data = decrypt_proof(payload, self._encryption_key)
        try:
            return DecryptedProof.from_dict(data)
        except ValueError as e:
            raise DecryptionError(str(e)) from e

    def verify(self, event: IdentityEvent, document: EvidenceDocument) -> VerificationOutcome:
        payload = document.proof
        if payload is None:
            return VerificationOutcome.denied(
                event, FailureReason.MALFORMED_EVIDENCE, "Evidence has no proof file")

        try:
            proof = self.decrypt(payload)
        except DecryptionError as e:
            return VerificationOutcome.denied(
                event, FailureReason.DECRYPTION_OR_PARSE_ERROR, f"Could not read proof: {e}")

        identity = document.owner_login
        computed_hash = hash_identity(self.attestation_kind, identity)

        if proof.identity_type != self.attestation_kind:
            return VerificationOutcome.denied(
                event, FailureReason.INVALID_IDENTITY_TYPE,
                f"Invalid identity type: {proof.identity_type!r}")
        if proof.identity != identity:
            return VerificationOutcome.denied(
                event, FailureReason.INVALID_IDENTITY,
                f"Invalid identity: {proof.identity} != {identity}")
        if proof.sender != event.sender:
            return VerificationOutcome.denied(
                event, FailureReason.INVALID_SENDER,
                f"Invalid sender: {proof.sender} != {event.sender}")
        if not identity_hashes_equal(proof.identity_hash, computed_hash):
            return VerificationOutcome.denied(
                event, FailureReason.INVALID_IDENTITY_HASH,
                f"Invalid identity hash: {proof.identity_hash} != {computed_hash}")
        if not identity_hashes_equal(event.identity_hash, computed_hash):
            return VerificationOutcome.denied(
                event, FailureReason.CLAIM_HASH_MISMATCH,
                f"Claim is for {event.identity_hash}, evidence proves {computed_hash}")

        return VerificationOutcome.approved(event)
