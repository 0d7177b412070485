"""
Evidence fetch and shape validation tests.
"""

import threading
import unittest
from unittest import mock

import requests

from identity_oracle.errors import FetchError, MalformedEvidence, WrongAttestationKind
from identity_oracle.evidence import (
    DEFAULT_DESCRIPTION,
    EvidenceFetcher,
    GistEvidenceSource,
    StaticEvidenceSource,
    parse_evidence_document,
)

from support import make_gist


class TestParseEvidenceDocument(unittest.TestCase):

    def test_valid_document(self):
        doc = parse_evidence_document(make_gist("octocat", "ciphertext"), DEFAULT_DESCRIPTION)
        self.assertEqual(doc.owner_login, "octocat")
        self.assertEqual(doc.description, DEFAULT_DESCRIPTION)
        self.assertEqual(doc.proof, "ciphertext")

    def test_wrong_description(self):
        body = make_gist("octocat", "ciphertext", description="My dotfiles")
        with self.assertRaises(WrongAttestationKind) as ctx:
            parse_evidence_document(body, DEFAULT_DESCRIPTION)
        self.assertEqual(ctx.exception.description, "My dotfiles")

    def test_wrong_description_wins_over_malformed(self):
        body = {"description": "other", "files": {"proof": {}}}
        with self.assertRaises(WrongAttestationKind):
            parse_evidence_document(body, DEFAULT_DESCRIPTION)

    def test_missing_description(self):
        body = make_gist("octocat", "ciphertext")
        del body["description"]
        with self.assertRaises(WrongAttestationKind):
            parse_evidence_document(body, DEFAULT_DESCRIPTION)

    def test_proof_without_content(self):
        body = make_gist("octocat", "ciphertext")
        body["files"]["proof"] = {"filename": "proof", "truncated": True}
        with self.assertRaises(MalformedEvidence) as ctx:
            parse_evidence_document(body, DEFAULT_DESCRIPTION)
        self.assertIs(ctx.exception.raw, body)
        self.assertIn("Malformed response data", str(ctx.exception))

    def test_no_proof_file(self):
        body = make_gist("octocat", "ciphertext")
        body["files"] = {"README.md": {"content": "hi"}}
        with self.assertRaises(MalformedEvidence):
            parse_evidence_document(body, DEFAULT_DESCRIPTION)

    def test_no_files(self):
        body = make_gist("octocat", "ciphertext")
        del body["files"]
        with self.assertRaises(MalformedEvidence):
            parse_evidence_document(body, DEFAULT_DESCRIPTION)

    def test_no_owner(self):
        body = make_gist("octocat", "ciphertext")
        body["owner"] = None
        with self.assertRaises(MalformedEvidence):
            parse_evidence_document(body, DEFAULT_DESCRIPTION)

    def test_other_files_kept(self):
        body = make_gist("octocat", "ciphertext")
        body["files"]["notes.txt"] = {"content": "hello"}
        doc = parse_evidence_document(body, DEFAULT_DESCRIPTION)
        self.assertEqual(doc.files["notes.txt"], "hello")


def _response(status_code=200, body=None, json_error=False):
    r = mock.Mock()
    r.status_code = status_code
    if json_error:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = body
    return r


class TestGistEvidenceSource(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.source = GistEvidenceSource(api_base="https://api.example.com/", timeout=2.5,
                                         session_factory=lambda: self.session)

    def test_get_request(self):
        body = make_gist("octocat", "ciphertext")
        self.session.get.return_value = _response(body=body)

        self.assertEqual(self.source.fetch("abc123"), body)

        args, kwargs = self.session.get.call_args
        self.assertEqual(args[0], "https://api.example.com/gists/abc123")
        self.assertEqual(kwargs["timeout"], 2.5)
        self.assertEqual(kwargs["headers"]["Accept"], "application/vnd.github.v3+json")
        self.assertNotIn("Authorization", kwargs["headers"])

    def test_reference_cannot_leave_gists_path(self):
        for reference in ("../users/octocat", "abc/../../user", "abc?per_page=1", "abc%2F..", ""):
            with self.assertRaises(FetchError) as ctx:
                self.source.fetch(reference)
            self.assertEqual(ctx.exception.reference, reference)
        self.session.get.assert_not_called()

    def test_session_per_thread(self):
        sessions = []

        def factory():
            session = mock.Mock(spec=requests.Session)
            session.get.return_value = _response(body={})
            sessions.append(session)
            return session

        source = GistEvidenceSource(session_factory=factory)
        source.fetch("abc")
        source.fetch("def")
        worker = threading.Thread(target=source.fetch, args=("abc",))
        worker.start()
        worker.join()

        self.assertEqual(len(sessions), 2)
        self.assertEqual(sessions[0].get.call_count, 2)
        self.assertEqual(sessions[1].get.call_count, 1)

    def test_token_header(self):
        source = GistEvidenceSource(session_factory=lambda: self.session, token="t0k")
        self.session.get.return_value = _response(body={})
        source.fetch("abc")
        self.assertEqual(self.session.get.call_args[1]["headers"]["Authorization"], "token t0k")

    def test_timeout_is_fetch_error(self):
        self.session.get.side_effect = requests.Timeout("slow")
        with self.assertRaises(FetchError) as ctx:
            self.source.fetch("abc123")
        self.assertIn("timed out", str(ctx.exception))

    def test_connection_error(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(FetchError):
            self.source.fetch("abc123")

    def test_non_2xx(self):
        self.session.get.return_value = _response(status_code=404)
        with self.assertRaises(FetchError) as ctx:
            self.source.fetch("abc123")
        self.assertEqual(ctx.exception.status_code, 404)

    def test_non_json_body(self):
        self.session.get.return_value = _response(json_error=True)
        with self.assertRaises(FetchError):
            self.source.fetch("abc123")

    def test_non_object_body(self):
        self.session.get.return_value = _response(body=["not", "an", "object"])
        with self.assertRaises(FetchError):
            self.source.fetch("abc123")


class TestEvidenceFetcher(unittest.TestCase):

    def test_fetch_and_parse(self):
        source = StaticEvidenceSource({"g1": make_gist("octocat", "ciphertext")})
        doc = EvidenceFetcher(source).fetch("g1")
        self.assertEqual(doc.owner_login, "octocat")

    def test_unknown_reference(self):
        with self.assertRaises(FetchError):
            EvidenceFetcher(StaticEvidenceSource()).fetch("missing")

    def test_custom_description(self):
        source = StaticEvidenceSource({"g1": make_gist("octocat", "x", description="Custom")})
        self.assertEqual(EvidenceFetcher(source, "Custom").fetch("g1").description, "Custom")
        with self.assertRaises(WrongAttestationKind):
            EvidenceFetcher(source).fetch("g1")


if __name__ == "__main__":
    unittest.main()
