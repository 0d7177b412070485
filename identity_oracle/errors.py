"""
Exception hierarchy for the identity oracle.

Evidence and decryption errors are verification failures: they are always
recovered into a failed VerificationOutcome and the event is denied.
Submission errors are settlement failures and are surfaced to the caller of
the submitter. ConfigError is raised at startup only.
"""

from typing import Any, Mapping, Optional, Sequence


class OracleError(Exception):
    """Base class for all oracle errors."""


class ConfigError(OracleError):
    """Missing or invalid process configuration."""

    def __init__(self, problems: Sequence[str]):
        self.problems = list(problems)
        super().__init__("Invalid oracle configuration: " + "; ".join(self.problems))


class EvidenceError(OracleError):
    """The evidence document could not be retrieved or is unusable."""


class FetchError(EvidenceError):
    """Network failure, timeout, non-2xx response or undecodable body."""

    def __init__(self, reference: str, message: str, status_code: Optional[int] = None):
        self.reference = reference
        self.status_code = status_code
        super().__init__(f"Failed to fetch evidence {reference}: {message}")


class MalformedEvidence(EvidenceError):
    """The document lacks a field the verifier needs."""

    def __init__(self, message: str, raw: Optional[Mapping[str, Any]] = None):
        self.raw = raw
        super().__init__(message)


class WrongAttestationKind(EvidenceError):
    """The document's description is not the expected attestation string."""

    def __init__(self, description: Any, expected: str):
        self.description = description
        self.expected = expected
        super().__init__(f"Incorrect attestation description: {description!r}")


class DecryptionError(OracleError):
    """The proof payload could not be decrypted with the shared key."""


class SubmissionError(OracleError):
    """
    A settlement transaction failed to reach finalization.

    Carries enough context (hash list, approve flag, nonce) to retry the
    batch manually or in a later run.
    """

    ambiguous = False

    def __init__(
        self,
        message: str,
        hashes: Sequence[str] = (),
        approve: Optional[bool] = None,
        nonce: Optional[int] = None,
    ):
        self.hashes = list(hashes)
        self.approve = approve
        self.nonce = nonce
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "error_type": type(self).__name__,
            "hashes": self.hashes,
            "approve": self.approve,
            "nonce": self.nonce,
            "ambiguous": self.ambiguous,
        }


class FinalizationTimeout(SubmissionError):
    """
    The transaction was broadcast but not finalized in time.

    It may still finalize later, so the outcome is unknown.
    """

    ambiguous = True
