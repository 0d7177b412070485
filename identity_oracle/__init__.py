"""
Identity Attestation Oracle

Off-chain verifier for on-chain identity claims.

A claimant registers an identity (e.g. a GitHub login) on the ledger and
publishes an attestation gist whose "proof" file holds an encrypted
statement: identity type, identity, ledger account and identity hash. The
oracle fetches every pending attestation, decrypts the statement with the
shared key and checks it against the claim and the gist owner, then settles
the batch on the ledger with one verifyMany and one denyMany call.

Usage:
    from identity_oracle import IdentityOracle, IdentityEvent, load_config

    oracle = IdentityOracle.from_config(load_config())
    report = oracle.on_receive_events("memory://local", [
        IdentityEvent(identity_hash="0x...", sender="0x...", attestation="<gist id>"),
    ])

    report.partition.approve   # hashes sent in verifyMany
    report.partition.deny      # hashes sent in denyMany
    report.failures            # SubmissionErrors, if any batch failed
"""

__version__ = "1.0.0"

# Core types
from .models import IdentityEvent, EvidenceDocument, DecryptedProof

# Hashing and encryption
from .hashing import hash_identity, identity_hashes_equal, compact_encode, encode_text
from .proof_cipher import encrypt_proof, decrypt_proof

# Errors
from .errors import (
    OracleError,
    ConfigError,
    EvidenceError,
    FetchError,
    MalformedEvidence,
    WrongAttestationKind,
    DecryptionError,
    SubmissionError,
    FinalizationTimeout,
)

# Pipeline
from .evidence import EvidenceSource, GistEvidenceSource, StaticEvidenceSource, EvidenceFetcher
from .verifier import ClaimVerifier, VerificationOutcome, FailureReason
from .aggregator import OutcomeAggregator, Partition
from .settlement import SettlementSubmitter, SettlementReport, SettlementAttempt
from .oracle import IdentityOracle, on_receive_events

# Ledger and signing
from .ledger import (
    LedgerClient,
    InMemoryLedger,
    SignedCall,
    FinalizationReceipt,
    LedgerEvent,
    SubmissionStatus,
    get_ledger_client,
    register_ledger_backend,
)
from .signing import Ed25519Signer, signing_identity

# Configuration
from .config import OracleConfig, load_config


__all__ = [
    "__version__",

    # Types
    "IdentityEvent",
    "EvidenceDocument",
    "DecryptedProof",

    # Hashing and encryption
    "hash_identity",
    "identity_hashes_equal",
    "compact_encode",
    "encode_text",
    "encrypt_proof",
    "decrypt_proof",

    # Errors
    "OracleError",
    "ConfigError",
    "EvidenceError",
    "FetchError",
    "MalformedEvidence",
    "WrongAttestationKind",
    "DecryptionError",
    "SubmissionError",
    "FinalizationTimeout",

    # Pipeline
    "EvidenceSource",
    "GistEvidenceSource",
    "StaticEvidenceSource",
    "EvidenceFetcher",
    "ClaimVerifier",
    "VerificationOutcome",
    "FailureReason",
    "OutcomeAggregator",
    "Partition",
    "SettlementSubmitter",
    "SettlementReport",
    "SettlementAttempt",
    "IdentityOracle",
    "on_receive_events",

    # Ledger and signing
    "LedgerClient",
    "InMemoryLedger",
    "SignedCall",
    "FinalizationReceipt",
    "LedgerEvent",
    "SubmissionStatus",
    "get_ledger_client",
    "register_ledger_backend",
    "Ed25519Signer",
    "signing_identity",

    # Configuration
    "OracleConfig",
    "load_config",
]
