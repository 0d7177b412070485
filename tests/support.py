"""Shared builders for oracle tests."""

from identity_oracle.evidence import DEFAULT_DESCRIPTION
from identity_oracle.hashing import hash_identity
from identity_oracle.models import IdentityEvent
from identity_oracle.proof_cipher import encrypt_proof
from identity_oracle.signing import Ed25519Signer

KEY = "commonwealth-identity-service"
VERIFIER_SEED = "0x" + "11" * 32
ALICE = "0x" + "a1" * 32
BOB = "0x" + "b0" * 32


def make_proof(identity, sender, key=KEY, identity_type="github", identity_hash=None):
    return encrypt_proof({
        "identityType": identity_type,
        "identity": identity,
        "sender": sender,
        "identityHash": identity_hash or hash_identity(identity_type, identity),
    }, key)


def make_gist(owner, proof, description=DEFAULT_DESCRIPTION):
    return {
        "id": "gist",
        "description": description,
        "owner": {"login": owner},
        "files": {"proof": {"filename": "proof", "content": proof}},
    }


def make_event(login, sender, attestation):
    return IdentityEvent(
        identity_hash=hash_identity("github", login),
        sender=sender,
        attestation=attestation,
    )


def verifier_signer():
    return Ed25519Signer.from_secret(VERIFIER_SEED)
