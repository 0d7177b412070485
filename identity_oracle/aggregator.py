"""
Outcome aggregation.

Runs fetch and verify for every event of a batch on a thread pool and waits
for all of them before splitting the outcomes into approve and deny hash
lists.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Sequence

from .errors import EvidenceError
from .evidence import EvidenceFetcher
from .models import IdentityEvent
from .verifier import ClaimVerifier, VerificationOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass
class Partition:
    """Approve/deny split of one batch, in input order."""
    approve: List[str] = field(default_factory=list)
    deny: List[str] = field(default_factory=list)
    outcomes: List[VerificationOutcome] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[VerificationOutcome]) -> 'Partition':
        partition = cls(outcomes=list(outcomes))
        for outcome in outcomes:
            target = partition.approve if outcome.success else partition.deny
            target.append(outcome.identity_hash)
        return partition

    def __len__(self) -> int:
        return len(self.approve) + len(self.deny)


class OutcomeAggregator:
    """Fetch + verify over a batch of independent events."""

    def __init__(self, fetcher: EvidenceFetcher, verifier: ClaimVerifier,
                 max_workers: int = DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.fetcher = fetcher
        self.verifier = verifier
        self.max_workers = max_workers

    def process_event(self, event: IdentityEvent) -> VerificationOutcome:
        """Fetch and verify one event. Evidence failures become deny outcomes."""
        try:
            document = self.fetcher.fetch(event.attestation)
        except EvidenceError as e:
            logger.debug("Evidence for %s rejected: %s", event.identity_hash, e)
            return VerificationOutcome.from_evidence_error(event, e)
        return self.verifier.verify(event, document)

    def verify_all(self, events: Sequence[IdentityEvent]) -> List[VerificationOutcome]:
        if not events:
            return []
        workers = min(self.max_workers, len(events))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="evidence") as pool:
            # one context copy per task: a Context cannot be entered by two threads at once
            futures = [pool.submit(contextvars.copy_context().run, self.process_event, event)
                       for event in events]
            return [f.result() for f in futures]

    def aggregate(self, events: Sequence[IdentityEvent]) -> Partition:
        return Partition.from_outcomes(self.verify_all(events))
