import json

from identity_oracle import cli, logging_config, oracle
from identity_oracle.evidence import StaticEvidenceSource
from identity_oracle.hashing import hash_identity
from identity_oracle.proof_cipher import decrypt_proof

from support import ALICE, BOB, KEY, make_event, make_gist, make_proof


def test_hash(capsys):
    assert cli.main(["hash", "-i", "octocat"]) == 0
    assert capsys.readouterr().out.strip() == hash_identity("github", "octocat")


def test_encrypt_proof_round_trip(capsys, tmp_path):
    assert cli.main(["encrypt-proof", "-i", "octocat", "-s", ALICE, "-k", KEY]) == 0
    envelope = capsys.readouterr().out.strip()
    assert decrypt_proof(envelope, KEY) == {
        "identityType": "github",
        "identity": "octocat",
        "sender": ALICE,
        "identityHash": hash_identity("github", "octocat"),
    }

    proof_file = tmp_path / "proof"
    proof_file.write_text(envelope)
    assert cli.main(["decrypt-proof", "-f", str(proof_file), "-k", KEY]) == 0
    assert json.loads(capsys.readouterr().out)["identity"] == "octocat"


def test_decrypt_with_wrong_key(tmp_path):
    proof_file = tmp_path / "proof"
    proof_file.write_text(make_proof("octocat", ALICE))
    assert cli.main(["decrypt-proof", "-f", str(proof_file), "-k", "wrong"]) == 1


def test_keygen(capsys):
    assert cli.main(["keygen"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["seed"].startswith("0x") and len(out["seed"]) == 66
    assert out["account_id"].startswith("0x")


def test_process(oracle_env, monkeypatch, tmp_path, capsys):
    source = StaticEvidenceSource({
        "g1": make_gist("octocat", make_proof("octocat", ALICE)),
        "g2": make_gist("hubot", make_proof("hubot", BOB)),
    })
    monkeypatch.setattr(oracle, "GistEvidenceSource", lambda **kwargs: source)
    monkeypatch.setattr(logging_config, "configure_logging", lambda *args, **kwargs: None)

    good = make_event("octocat", ALICE, "g1")
    bad = make_event("hubot", ALICE, "g2")
    events_file = tmp_path / "events.json"
    events_file.write_text(json.dumps({"events": [
        {"identityHash": good.identity_hash, "sender": good.sender, "attestation": "g1"},
        bad.to_dict(),
    ]}))

    code = cli.main(["process", "-e", str(events_file), "--endpoint", "memory://cli-test"])

    assert code == 0
    out = capsys.readouterr().out
    report = json.loads(out[out.index("{"):out.rindex("}") + 1])
    assert report["approve"] == [good.identity_hash]
    assert report["deny"] == [bad.identity_hash]


def test_process_without_config(monkeypatch, tmp_path):
    for name in ("IDENTITY_ENCRYPTION_KEY", "VERIFIER_INDEX", "VERIFIER_SECRET"):
        monkeypatch.delenv(name, raising=False)
    events_file = tmp_path / "events.json"
    events_file.write_text("[]")
    assert cli.main(["process", "-e", str(events_file)]) == 2


def test_process_malformed_events(oracle_env, monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(logging_config, "configure_logging", lambda *args, **kwargs: None)
    events_file = tmp_path / "events.json"
    for content in ('[{"sender": "0xabc"}]', '["not an event"]', '{"events": 5}', "{not json"):
        events_file.write_text(content)
        assert cli.main(["process", "-e", str(events_file)]) == 2
        assert "✗ Cannot read events" in capsys.readouterr().err

    assert cli.main(["process", "-e", str(tmp_path / "missing.json")]) == 2
