"""
Ledger client interface.

The oracle only needs three things from the ledger: the verifier account's
current nonce, a way to submit a signed identity call and wait for it to
finalize, and a way to turn secret material into a signing identity.
Encoding, networking and finalization tracking belong to the concrete
client.

InMemoryLedger is a reference implementation for development, tests and
dry runs. It checks signatures and nonces like a real chain would.
"""

import hashlib
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from .errors import FinalizationTimeout, SubmissionError
from .signing import Ed25519Signer, signing_identity, verify_signature
from .util import b64e, canonicalize, now_epoch

logger = logging.getLogger(__name__)

IDENTITY_MODULE = "identity"
VERIFY_MANY = "verifyMany"
DENY_MANY = "denyMany"
IDENTITY_CALLS = (VERIFY_MANY, DENY_MANY)

DEFAULT_FINALIZATION_TIMEOUT = 120.0


class SubmissionStatus(str, Enum):
    """Lifecycle of a settlement transaction."""
    PENDING = "PENDING"
    BROADCAST = "BROADCAST"
    FINALIZED = "FINALIZED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class SignedCall:
    """An identity module call signed by the verifier account."""
    call_name: str
    hashes: Tuple[str, ...]
    verifier_index: int
    account_id: str
    nonce: int
    signature: bytes = b""

    def signing_payload(self) -> bytes:
        return canonicalize({
            "module": IDENTITY_MODULE,
            "call": self.call_name,
            "args": [list(self.hashes), self.verifier_index],
            "signer": self.account_id,
            "nonce": self.nonce,
        })

    @property
    def tx_hash(self) -> str:
        return "0x" + hashlib.blake2b(self.signing_payload() + self.signature, digest_size=32).hexdigest()

    @classmethod
    def build(
        cls,
        call_name: str,
        hashes: Sequence[str],
        verifier_index: int,
        signer: Ed25519Signer,
        nonce: int,
    ) -> "SignedCall":
        if call_name not in IDENTITY_CALLS:
            raise ValueError(f"Unknown identity call: {call_name}")
        unsigned = cls(call_name, tuple(hashes), int(verifier_index), signer.account_id, int(nonce))
        signature = signer.sign(unsigned.signing_payload())
        return cls(unsigned.call_name, unsigned.hashes, unsigned.verifier_index,
                   unsigned.account_id, unsigned.nonce, signature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call": f"{IDENTITY_MODULE}.{self.call_name}",
            "hashes": list(self.hashes),
            "verifier_index": self.verifier_index,
            "account_id": self.account_id,
            "nonce": self.nonce,
            "signature_b64": b64e(self.signature),
        }


@dataclass(frozen=True)
class LedgerEvent:
    """An event emitted by the ledger while applying a call."""
    phase: str
    section: str
    method: str
    data: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return f"{self.phase}: {self.section}.{self.method} {list(self.data)}"


@dataclass(frozen=True)
class FinalizationReceipt:
    """Proof that a settlement call was included in a finalized block."""
    tx_hash: str
    block_hash: str
    call_name: str
    nonce: int
    events: Tuple[LedgerEvent, ...] = ()
    finalized_at: int = field(default_factory=now_epoch)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "block_hash": self.block_hash,
            "call": self.call_name,
            "nonce": self.nonce,
            "events": [str(e) for e in self.events],
            "finalized_at": self.finalized_at,
        }


class LedgerClient(ABC):
    """Abstract interface to the ledger the oracle settles on."""

    @abstractmethod
    def current_nonce(self, account_id: str) -> int:
        """
        Read the account's next nonce from the ledger.

        Raises:
            SubmissionError: if the nonce cannot be read
        """
        pass

    @abstractmethod
    def broadcast(self, call: SignedCall) -> str:
        """
        Send a signed call to the network.

        Returns:
            The transaction hash

        Raises:
            SubmissionError: if the call is rejected
        """
        pass

    @abstractmethod
    def wait_for_finalization(self, tx_hash: str, timeout: float) -> FinalizationReceipt:
        """
        Block until the transaction is finalized.

        Raises:
            FinalizationTimeout: not finalized within timeout
            SubmissionError: dropped or failed on chain
        """
        pass

    def signing_identity(self, secret: str) -> Tuple[str, Ed25519Signer]:
        """Resolve secret material to (account_id, signer)."""
        return signing_identity(secret)

    def submit(
        self,
        call_name: str,
        hashes: Sequence[str],
        verifier_index: int,
        signer: Ed25519Signer,
        nonce: int,
        timeout: float = DEFAULT_FINALIZATION_TIMEOUT,
        on_status: Optional[Callable[[SubmissionStatus], None]] = None,
    ) -> FinalizationReceipt:
        """Sign, broadcast and wait for finalization of one identity call."""
        notify = on_status or (lambda status: None)
        call = SignedCall.build(call_name, hashes, verifier_index, signer, nonce)
        notify(SubmissionStatus.PENDING)
        try:
            tx_hash = self.broadcast(call)
        except SubmissionError:
            notify(SubmissionStatus.REJECTED)
            raise
        notify(SubmissionStatus.BROADCAST)
        try:
            receipt = self.wait_for_finalization(tx_hash, timeout)
        except FinalizationTimeout:
            raise
        except SubmissionError:
            notify(SubmissionStatus.REJECTED)
            raise
        notify(SubmissionStatus.FINALIZED)
        return receipt


class InMemoryLedger(LedgerClient):
    """
    In-memory ledger for development/testing.

    WARNING: Not suitable for production.
    - Nothing leaves the process
    - Finalization is immediate

    Args:
        endpoint: label reported in receipts
        reject_calls: call names to reject at broadcast
        finalize: when False, broadcasts are accepted but never finalize
    """

    def __init__(
        self,
        endpoint: str = "memory://local",
        reject_calls: Optional[Set[str]] = None,
        finalize: bool = True,
    ):
        self.endpoint = endpoint
        self.reject_calls = set(reject_calls or ())
        self.finalize = finalize
        self._nonces: Dict[str, int] = {}
        self._pending: Dict[str, SignedCall] = {}
        self._receipts: Dict[str, FinalizationReceipt] = {}
        self._block_numbers = itertools.count(1)
        self._lock = threading.Lock()
        self.submitted: List[SignedCall] = []
        self.nonce_reads: List[Tuple[str, int]] = []
        self.verified: List[str] = []
        self.denied: List[str] = []

    def current_nonce(self, account_id: str) -> int:
        with self._lock:
            nonce = self._nonces.get(account_id, 0)
            self.nonce_reads.append((account_id, nonce))
            return nonce

    def broadcast(self, call: SignedCall) -> str:
        with self._lock:
            expected = self._nonces.get(call.account_id, 0)
            if call.call_name in self.reject_calls:
                raise SubmissionError(f"{call.call_name} rejected by ledger",
                                      hashes=call.hashes, approve=call.call_name == VERIFY_MANY,
                                      nonce=call.nonce)
            if call.nonce != expected:
                raise SubmissionError(f"Stale or future nonce {call.nonce}, expected {expected}",
                                      hashes=call.hashes, approve=call.call_name == VERIFY_MANY,
                                      nonce=call.nonce)
            if not verify_signature(call.account_id, call.signing_payload(), call.signature):
                raise SubmissionError("Bad signature", hashes=call.hashes,
                                      approve=call.call_name == VERIFY_MANY, nonce=call.nonce)

            self._nonces[call.account_id] = expected + 1
            self.submitted.append(call)
            tx_hash = call.tx_hash
            if self.finalize:
                self._receipts[tx_hash] = self._apply(call, tx_hash)
            else:
                self._pending[tx_hash] = call
            return tx_hash

    def _apply(self, call: SignedCall, tx_hash: str) -> FinalizationReceipt:
        block_number = next(self._block_numbers)
        block_hash = "0x" + hashlib.blake2b(
            f"{self.endpoint}:{block_number}:{tx_hash}".encode("utf-8"), digest_size=32
        ).hexdigest()

        method = "Verified" if call.call_name == VERIFY_MANY else "Denied"
        target = self.verified if call.call_name == VERIFY_MANY else self.denied
        phase = "ApplyExtrinsic(1)"
        events = []
        for h in call.hashes:
            target.append(h)
            events.append(LedgerEvent(phase, IDENTITY_MODULE, method, (h, call.verifier_index)))
        events.append(LedgerEvent(phase, "system", "ExtrinsicSuccess"))
        return FinalizationReceipt(tx_hash=tx_hash, block_hash=block_hash, call_name=call.call_name,
                                   nonce=call.nonce, events=tuple(events))

    def wait_for_finalization(self, tx_hash: str, timeout: float) -> FinalizationReceipt:
        with self._lock:
            receipt = self._receipts.get(tx_hash)
            pending = self._pending.get(tx_hash)
        if receipt is not None:
            return receipt
        if pending is not None:
            raise FinalizationTimeout(f"Transaction {tx_hash} not finalized within {timeout}s",
                                      hashes=pending.hashes,
                                      approve=pending.call_name == VERIFY_MANY,
                                      nonce=pending.nonce)
        raise SubmissionError(f"Unknown transaction {tx_hash}")


_memory_ledgers: Dict[str, InMemoryLedger] = {}
_memory_lock = threading.Lock()


def _memory_ledger(endpoint: str) -> InMemoryLedger:
    """One shared in-memory ledger per endpoint, so nonces persist across runs."""
    with _memory_lock:
        if endpoint not in _memory_ledgers:
            _memory_ledgers[endpoint] = InMemoryLedger(endpoint=endpoint)
        return _memory_ledgers[endpoint]


# Ledger backends keyed by endpoint scheme
_LEDGER_BACKENDS: Dict[str, Callable[[str], LedgerClient]] = {
    "memory": _memory_ledger,
}


def register_ledger_backend(scheme: str, factory: Callable[[str], LedgerClient]) -> None:
    """Register a client factory for endpoints of the form scheme://..."""
    _LEDGER_BACKENDS[scheme] = factory


def get_ledger_client(endpoint: str) -> LedgerClient:
    """
    Create a ledger client for an endpoint URL.

    Raises:
        ValueError: no backend is registered for the endpoint's scheme
    """
    scheme = endpoint.split("://", 1)[0] if "://" in endpoint else ""
    factory = _LEDGER_BACKENDS.get(scheme)
    if factory is None:
        raise ValueError(f"No ledger backend registered for endpoint {endpoint!r}")
    return factory(endpoint)
