"""
Core data types passed through the verification pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class IdentityEvent:
    """A pending on-chain identity claim awaiting verification."""
    identity_hash: str
    sender: str
    attestation: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IdentityEvent":
        """Accepts both snake_case and the ledger's camelCase keys."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Identity event must be an object, got {type(data).__name__}")
        values = {
            "identity_hash": data.get("identity_hash", data.get("identityHash")),
            "sender": data.get("sender"),
            "attestation": data.get("attestation"),
        }
        missing = [k for k, v in values.items() if v is None]
        if missing:
            raise ValueError(f"Missing required fields: {missing}")
        return cls(**{k: str(v) for k, v in values.items()})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity_hash": self.identity_hash,
            "sender": self.sender,
            "attestation": self.attestation,
        }


@dataclass(frozen=True)
class EvidenceDocument:
    """The externally hosted attestation, reduced to the fields we check."""
    description: str
    owner_login: str
    files: Mapping[str, str] = field(default_factory=dict)

    @property
    def proof(self) -> Optional[str]:
        return self.files.get("proof")


@dataclass(frozen=True)
class DecryptedProof:
    """The claimant's statement, recovered from the encrypted proof file."""
    identity_type: str
    identity: str
    sender: str
    identity_hash: str

    FIELDS = {
        "identity_type": "identityType",
        "identity": "identity",
        "sender": "sender",
        "identity_hash": "identityHash",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecryptedProof":
        """
        Build from the decrypted JSON object.

        Raises:
            ValueError: a field is missing or is not a string
        """
        values = {}
        for attr, key in cls.FIELDS.items():
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"Proof field {key!r} missing or not a string")
            values[attr] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, attr) for attr, key in self.FIELDS.items()}
