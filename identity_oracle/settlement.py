"""
Settlement Submission

Records the oracle's decisions on the ledger: one verifyMany call for the
approved hashes and one denyMany call for the denied hashes.

Both calls come from the same account, so each consumes one nonce. The two
submissions run strictly one after the other and the nonce is read from the
ledger immediately before each signing. It is never cached or incremented
locally; the ledger is the only source of truth for it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .aggregator import Partition
from .errors import SubmissionError
from .ledger import (
    DEFAULT_FINALIZATION_TIMEOUT,
    DENY_MANY,
    VERIFY_MANY,
    FinalizationReceipt,
    LedgerClient,
    SubmissionStatus,
)
from .logging_config import audit_log
from .signing import Ed25519Signer

logger = logging.getLogger(__name__)


@dataclass
class SettlementAttempt:
    """Bookkeeping for one settlement call."""
    approve: bool
    hashes: List[str]
    nonce: Optional[int] = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    receipt: Optional[FinalizationReceipt] = None
    error: Optional[SubmissionError] = None

    @property
    def call_name(self) -> str:
        return VERIFY_MANY if self.approve else DENY_MANY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call": self.call_name,
            "hashes": self.hashes,
            "nonce": self.nonce,
            "status": self.status.value,
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class SettlementReport:
    """What one run did on the ledger."""
    partition: Partition
    attempts: List[SettlementAttempt] = field(default_factory=list)

    @property
    def receipts(self) -> List[FinalizationReceipt]:
        return [a.receipt for a in self.attempts if a.receipt is not None]

    @property
    def failures(self) -> List[SubmissionError]:
        return [a.error for a in self.attempts if a.error is not None]

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approve": self.partition.approve,
            "deny": self.partition.deny,
            "outcomes": [o.to_dict() for o in self.partition.outcomes],
            "settlements": [a.to_dict() for a in self.attempts],
            "ok": self.ok,
        }


class SettlementSubmitter:
    """
    Submits batched identity decisions from the verifier account.

    State machine per call: PENDING -> BROADCAST -> FINALIZED | REJECTED.
    Only FINALIZED is success. A finalization timeout leaves the call in
    BROADCAST and is reported as ambiguous; nothing is retried here.
    """

    def __init__(
        self,
        verifier_index: int,
        signer: Ed25519Signer,
        finalization_timeout: float = DEFAULT_FINALIZATION_TIMEOUT,
    ):
        self.verifier_index = int(verifier_index)
        self.signer = signer
        self.finalization_timeout = finalization_timeout

    def submit(
        self,
        ledger: LedgerClient,
        hashes: Sequence[str],
        approve: bool,
        attempt: Optional[SettlementAttempt] = None,
    ) -> FinalizationReceipt:
        """
        Submit one batch.

        Raises:
            SubmissionError: nonce read, signing, broadcast or finalization
                failed
        """
        attempt = attempt or SettlementAttempt(approve=approve, hashes=list(hashes))
        call_name = attempt.call_name

        def on_status(status: SubmissionStatus) -> None:
            attempt.status = status
            logger.info("Transaction status: %s", status.value)

        try:
            attempt.nonce = ledger.current_nonce(self.signer.account_id)
        except SubmissionError as e:
            attempt.status = SubmissionStatus.REJECTED
            raise SubmissionError(f"Nonce read failed: {e}", hashes, approve) from e

        audit_log.settlement_submitted(call_name, list(hashes), attempt.nonce, self.signer.account_id)
        try:
            receipt = ledger.submit(
                call_name,
                hashes,
                self.verifier_index,
                self.signer,
                attempt.nonce,
                timeout=self.finalization_timeout,
                on_status=on_status,
            )
        except SubmissionError as e:
            if e.nonce is None:
                e.nonce = attempt.nonce
            if not e.hashes:
                e.hashes = list(hashes)
            e.approve = approve
            raise
        except (ValueError, TypeError) as e:
            # call could not be built or signed; nothing was broadcast
            attempt.status = SubmissionStatus.REJECTED
            raise SubmissionError(f"Signing failed: {e}", hashes, approve, attempt.nonce) from e

        attempt.receipt = receipt
        audit_log.settlement_finalized(call_name, receipt.block_hash, [str(e) for e in receipt.events])
        return receipt

    def settle(self, ledger: LedgerClient, partition: Partition) -> SettlementReport:
        """
        Approve batch then deny batch, sequentially.

        Empty batches are skipped. A failed batch is logged and recorded in
        the report; it does not stop the other batch from being attempted.
        """
        report = SettlementReport(partition=partition)
        for approve, hashes in ((True, partition.approve), (False, partition.deny)):
            if not hashes:
                audit_log.settlement_skipped(approve)
                continue
            attempt = SettlementAttempt(approve=approve, hashes=list(hashes))
            report.attempts.append(attempt)
            try:
                self.submit(ledger, hashes, approve, attempt=attempt)
            except SubmissionError as e:
                attempt.error = e
                audit_log.settlement_failed(e.hashes, approve, e.nonce, str(e), ambiguous=e.ambiguous)
        return report
