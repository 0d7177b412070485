"""
Logging configuration for the identity oracle.

JSON log lines for the audit trail, plus the per-run id that ties together
every line one on_receive_events call produces.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import List, Optional

# set once per on_receive_events call
run_id_var: ContextVar[str] = ContextVar('run_id', default='')


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, tagged with the current run_id and thread."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        run_id = run_id_var.get()
        if run_id:
            log_data["run_id"] = run_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # audit events carry their own fields
        log_data.update(getattr(record, 'extra_fields', {}))

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records every verification decision and every settlement attempt so a
    failed batch can be reconstructed and retried by hand.
    """

    def __init__(self, name: str = "identity_oracle.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        extra = {
            "event_type": event_type,
            "run_id": run_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def events_received(self, count: int, ledger_endpoint: str) -> None:
        """Log the start of a run."""
        self._log(
            logging.INFO,
            "EVENTS_RECEIVED",
            count=count,
            ledger_endpoint=ledger_endpoint,
            message=f"Received {count} identity events"
        )

    def verification_outcome(
        self,
        identity_hash: str,
        attestation: str,
        success: bool,
        reason: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        """Log the verification decision for one event."""
        level = logging.INFO if success else logging.WARNING
        self._log(
            level,
            "VERIFICATION_OUTCOME",
            identity_hash=identity_hash,
            attestation=attestation,
            success=success,
            reason=reason,
            error=error,
            message=f"{'Approved' if success else 'Denied'} {identity_hash}"
        )

    def settlement_skipped(self, approve: bool) -> None:
        self._log(
            logging.DEBUG,
            "SETTLEMENT_SKIPPED",
            approve=approve,
            message=f"No {'approvals' if approve else 'denials'} to submit"
        )

    def settlement_submitted(
        self,
        call: str,
        hashes: List[str],
        nonce: int,
        account_id: str
    ) -> None:
        """Log a broadcast settlement transaction."""
        self._log(
            logging.INFO,
            "SETTLEMENT_SUBMITTED",
            call=call,
            hashes=hashes,
            nonce=nonce,
            account_id=account_id,
            message=f"Sending {call} with {len(hashes)} hashes from {account_id}"
        )

    def settlement_finalized(
        self,
        call: str,
        block_hash: str,
        events: List[str]
    ) -> None:
        """Log finalization with the resulting ledger events."""
        self._log(
            logging.INFO,
            "SETTLEMENT_FINALIZED",
            call=call,
            block_hash=block_hash,
            events=events,
            message=f"{call} completed at block hash {block_hash}"
        )

    def settlement_failed(
        self,
        hashes: List[str],
        approve: bool,
        nonce: Optional[int],
        error: str,
        ambiguous: bool = False
    ) -> None:
        """Log a failed settlement with enough detail to retry it."""
        self._log(
            logging.ERROR,
            "SETTLEMENT_FAILED",
            hashes=hashes,
            approve=approve,
            nonce=nonce,
            error=error,
            ambiguous=ambiguous,
            message=f"Settlement failed: {error}"
        )


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Route all oracle logging to stdout, as JSON unless json_format is off."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s'))
    root_logger.addHandler(handler)


def set_run_id(run_id: Optional[str] = None) -> str:
    """Start a run: bind run_id (a fresh uuid4 if None) to the current context."""
    if run_id is None:
        run_id = str(uuid.uuid4())
    run_id_var.set(run_id)
    return run_id


audit_log = AuditLogger()
