"""
Identity Oracle entry point.

    events -> [fetch -> verify] per event -> approve/deny partition
           -> verifyMany(approve) -> denyMany(deny)

An IdentityOracle owns its keys and collaborators, so several oracles with
different keys can live in one process.
"""

import logging
from typing import Callable, Optional, Sequence

from .aggregator import OutcomeAggregator
from .config import OracleConfig
from .evidence import EvidenceFetcher, EvidenceSource, GistEvidenceSource
from .ledger import LedgerClient, get_ledger_client
from .logging_config import audit_log, set_run_id
from .models import IdentityEvent
from .settlement import SettlementReport, SettlementSubmitter
from .signing import Ed25519Signer
from .verifier import ClaimVerifier

logger = logging.getLogger(__name__)

LedgerFactory = Callable[[str], LedgerClient]


class IdentityOracle:
    """Verifies identity claims and settles the decisions on the ledger."""

    def __init__(
        self,
        aggregator: OutcomeAggregator,
        submitter: SettlementSubmitter,
        ledger_factory: LedgerFactory = get_ledger_client,
    ):
        self.aggregator = aggregator
        self.submitter = submitter
        self.ledger_factory = ledger_factory

    @classmethod
    def from_config(
        cls,
        config: OracleConfig,
        evidence_source: Optional[EvidenceSource] = None,
        ledger_factory: LedgerFactory = get_ledger_client,
    ) -> "IdentityOracle":
        source = evidence_source or GistEvidenceSource(
            api_base=config.evidence_api_base,
            timeout=config.fetch_timeout,
            token=config.evidence_token,
        )
        fetcher = EvidenceFetcher(source, expected_description=config.attestation_description)
        verifier = ClaimVerifier(config.encryption_key, attestation_kind=config.attestation_kind)
        aggregator = OutcomeAggregator(fetcher, verifier, max_workers=config.fetch_workers)
        signer = Ed25519Signer.from_secret(config.verifier_secret)
        submitter = SettlementSubmitter(
            config.verifier_index, signer, finalization_timeout=config.finalization_timeout)
        return cls(aggregator, submitter, ledger_factory=ledger_factory)

    @property
    def account_id(self) -> str:
        return self.submitter.signer.account_id

    def on_receive_events(self, ledger_endpoint: str, events: Sequence[IdentityEvent]) -> SettlementReport:
        """
        Run the full pipeline for one batch.

        Returns once both settlements (if non-empty) have been attempted.
        Settlement failures are logged and recorded in the report, not raised.
        """
        set_run_id()
        audit_log.events_received(len(events), ledger_endpoint)
        ledger = self.ledger_factory(ledger_endpoint)

        partition = self.aggregator.aggregate(events)
        for outcome in partition.outcomes:
            audit_log.verification_outcome(
                outcome.identity_hash,
                outcome.event.attestation,
                outcome.success,
                reason=outcome.reason.value if outcome.reason else None,
                error=outcome.error,
            )

        logger.info("Sending tx from verifier: %s", self.account_id)
        report = self.submitter.settle(ledger, partition)
        logger.info("Run complete: %d approved, %d denied, %d settlement failures",
                    len(partition.approve), len(partition.deny), len(report.failures))
        return report


def on_receive_events(
    config: OracleConfig,
    ledger_endpoint: str,
    events: Sequence[IdentityEvent],
    evidence_source: Optional[EvidenceSource] = None,
) -> SettlementReport:
    """One-shot helper: build an oracle from config and process a batch."""
    oracle = IdentityOracle.from_config(config, evidence_source=evidence_source)
    return oracle.on_receive_events(ledger_endpoint, events)
