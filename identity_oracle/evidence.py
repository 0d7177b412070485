"""
Evidence retrieval.

An EvidenceSource returns the raw JSON body of a hosted attestation; the
EvidenceFetcher validates it into an EvidenceDocument. Every failure here is
an EvidenceError, which the aggregator turns into a deny outcome.
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .errors import FetchError, MalformedEvidence, WrongAttestationKind
from .models import EvidenceDocument

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_DESCRIPTION = "Edgeware Identity Attestation"
DEFAULT_TIMEOUT_SECONDS = 10.0

PROOF_FILE = "proof"

GIST_ID_RE = re.compile(r"[0-9A-Za-z]+")


class EvidenceSource(ABC):
    """Abstract interface for the external evidence host."""

    @abstractmethod
    def fetch(self, reference: str) -> Mapping[str, Any]:
        """
        Retrieve the raw document for a reference id.

        Raises:
            FetchError: on any transport or decoding failure
        """
        pass


class GistEvidenceSource(EvidenceSource):
    """
    Fetches attestations from the GitHub gists API.

    One GET per reference with a bounded timeout; timeouts and non-2xx
    responses are reported as FetchError. Each worker thread gets its own
    session from session_factory.
    """

    HEADERS = {
        "User-Agent": "identity-oracle",
        "Accept": "application/vnd.github.v3+json",
    }

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session_factory: Callable[[], requests.Session] = requests.Session,
        token: Optional[str] = None,
    ):
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._session_factory = session_factory
        self._local = threading.local()
        self._headers = dict(self.HEADERS)
        if token:
            self._headers["Authorization"] = f"token {token}"

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = self._session_factory()
        return session

    def url_for(self, reference: str) -> str:
        """
        Raises:
            FetchError: reference is not a gist id
        """
        if not isinstance(reference, str) or not GIST_ID_RE.fullmatch(reference):
            raise FetchError(reference, "not a gist id")
        return f"{self._api_base}/gists/{reference}"

    def fetch(self, reference: str) -> Mapping[str, Any]:
        url = self.url_for(reference)
        try:
            r = self.session.get(url, headers=self._headers, timeout=self._timeout)
        except requests.Timeout as e:
            raise FetchError(reference, f"timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(reference, str(e)) from e

        if not 200 <= r.status_code < 300:
            raise FetchError(reference, f"HTTP {r.status_code}", status_code=r.status_code)

        try:
            body = r.json()
        except ValueError as e:
            raise FetchError(reference, "response body is not JSON", status_code=r.status_code) from e
        if not isinstance(body, dict):
            raise FetchError(reference, "response body is not a JSON object", status_code=r.status_code)

        logger.debug("Fetched evidence %s from %s", reference, url)
        return body


class StaticEvidenceSource(EvidenceSource):
    """
    In-memory evidence source for development/testing.

    References not registered raise FetchError, like a 404 would.
    """

    def __init__(self, documents: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._documents: Dict[str, Mapping[str, Any]] = dict(documents or {})

    def add(self, reference: str, body: Mapping[str, Any]) -> None:
        self._documents[reference] = body

    def fetch(self, reference: str) -> Mapping[str, Any]:
        if reference not in self._documents:
            raise FetchError(reference, "HTTP 404", status_code=404)
        return self._documents[reference]


def parse_evidence_document(body: Mapping[str, Any], expected_description: str) -> EvidenceDocument:
    """
    Validate a raw gist body.

    The description is checked first, so a document of the wrong kind is
    always reported as WrongAttestationKind whatever else is wrong with it.

    Raises:
        WrongAttestationKind: description is not expected_description
        MalformedEvidence: proof file without content, no proof file,
            or no owner login
    """
    description = body.get("description")
    if description != expected_description:
        raise WrongAttestationKind(description, expected_description)

    files = body.get("files")
    if not isinstance(files, dict) or PROOF_FILE not in files:
        raise MalformedEvidence("Evidence has no proof file", raw=body)

    contents: Dict[str, str] = {}
    for name, entry in files.items():
        if isinstance(entry, dict) and isinstance(entry.get("content"), str):
            contents[name] = entry["content"]
        elif name == PROOF_FILE:
            raise MalformedEvidence(f"Malformed response data: {body!r}", raw=body)

    owner = body.get("owner")
    login = owner.get("login") if isinstance(owner, dict) else None
    if not isinstance(login, str) or not login:
        raise MalformedEvidence("Evidence has no owner login", raw=body)

    return EvidenceDocument(description=description, owner_login=login, files=contents)


class EvidenceFetcher:
    """Fetch plus shape validation for one reference."""

    def __init__(self, source: EvidenceSource, expected_description: str = DEFAULT_DESCRIPTION):
        self.source = source
        self.expected_description = expected_description

    def fetch(self, reference: str) -> EvidenceDocument:
        body = self.source.fetch(reference)
        return parse_evidence_document(body, self.expected_description)
