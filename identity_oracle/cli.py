#!/usr/bin/env python3
"""
Identity Oracle Command Line Interface

Usage:
    identity-oracle hash --type github --identity <login>
    identity-oracle encrypt-proof --identity <login> --sender <account> [--key <passphrase>]
    identity-oracle decrypt-proof --file <proof> [--key <passphrase>]
    identity-oracle keygen
    identity-oracle process --events <file> [--endpoint <ledger>]
"""

import argparse
import json
import os
import sys


def load_json(path: str):
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _key(args) -> str:
    key = args.key or os.getenv("IDENTITY_ENCRYPTION_KEY")
    if not key:
        raise SystemExit("No encryption key: pass --key or set IDENTITY_ENCRYPTION_KEY")
    return key


def cmd_hash(args):
    """Compute the identity commitment for a type/identity pair."""
    from identity_oracle.hashing import hash_identity

    print(hash_identity(args.type, args.identity))
    return 0


def cmd_encrypt_proof(args):
    """Build the encrypted proof a claimant puts in their attestation."""
    from identity_oracle.hashing import hash_identity
    from identity_oracle.proof_cipher import encrypt_proof

    proof = {
        "identityType": args.type,
        "identity": args.identity,
        "sender": args.sender,
        "identityHash": hash_identity(args.type, args.identity),
    }
    print(encrypt_proof(proof, _key(args)))
    return 0


def cmd_decrypt_proof(args):
    """Decrypt a proof file and print its JSON."""
    from identity_oracle.errors import DecryptionError
    from identity_oracle.proof_cipher import decrypt_proof

    with open(args.file, 'r', encoding='utf-8') as f:
        envelope = f.read()
    try:
        proof = decrypt_proof(envelope, _key(args))
    except DecryptionError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    print(json.dumps(proof, indent=2))
    return 0


def cmd_keygen(args):
    """Generate a verifier signing seed."""
    from identity_oracle.signing import Ed25519Signer, generate_seed

    seed = generate_seed()
    signer = Ed25519Signer.from_secret(seed)
    print(json.dumps({"seed": seed, "account_id": signer.account_id}, indent=2))
    print("\nStore the seed as VERIFIER_SECRET.", file=sys.stderr)
    return 0


def cmd_process(args):
    """Run the full pipeline over a JSON file of identity events."""
    from identity_oracle.config import load_config
    from identity_oracle.errors import ConfigError
    from identity_oracle.logging_config import configure_logging
    from identity_oracle.models import IdentityEvent
    from identity_oracle.oracle import IdentityOracle

    try:
        config = load_config()
    except ConfigError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2
    configure_logging(config.log_level, json_format=config.log_json)

    try:
        raw = load_json(args.events)
        if isinstance(raw, dict):
            raw = raw.get("events", [])
        if not isinstance(raw, list):
            raise ValueError("expected a list of identity events")
        events = [IdentityEvent.from_dict(e) for e in raw]
    except (OSError, ValueError) as e:
        print(f"✗ Cannot read events from {args.events}: {e}", file=sys.stderr)
        return 2

    oracle = IdentityOracle.from_config(config)
    report = oracle.on_receive_events(args.endpoint or config.ledger_endpoint, events)
    print(json.dumps(report.to_dict(), indent=2))

    print(f"\n✓ {len(report.partition.approve)} approved, "
          f"{len(report.partition.deny)} denied", file=sys.stderr)
    for failure in report.failures:
        print(f"✗ settlement failed: {failure}", file=sys.stderr)
    return 0 if report.ok else 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Identity attestation oracle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  identity-oracle hash -i octocat
  identity-oracle encrypt-proof -i octocat -s 0xabc... -k secret
  identity-oracle process -e events.json --endpoint memory://dry-run
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # hash
    hash_parser = subparsers.add_parser("hash", help="Compute identity hash")
    hash_parser.add_argument("-t", "--type", default="github", help="Identity type")
    hash_parser.add_argument("-i", "--identity", required=True, help="Identity string")

    # encrypt-proof
    enc_parser = subparsers.add_parser("encrypt-proof", help="Create an encrypted proof")
    enc_parser.add_argument("-t", "--type", default="github", help="Identity type")
    enc_parser.add_argument("-i", "--identity", required=True, help="Identity string")
    enc_parser.add_argument("-s", "--sender", required=True, help="Claimant account id")
    enc_parser.add_argument("-k", "--key", help="Shared encryption key")

    # decrypt-proof
    dec_parser = subparsers.add_parser("decrypt-proof", help="Decrypt a proof file")
    dec_parser.add_argument("-f", "--file", required=True, help="File holding the proof")
    dec_parser.add_argument("-k", "--key", help="Shared encryption key")

    # keygen
    subparsers.add_parser("keygen", help="Generate verifier signing seed")

    # process
    proc_parser = subparsers.add_parser("process", help="Verify and settle a batch of events")
    proc_parser.add_argument("-e", "--events", required=True, help="JSON file of identity events")
    proc_parser.add_argument("--endpoint", help="Ledger endpoint (default LEDGER_ENDPOINT)")

    args = parser.parse_args(argv)

    commands = {
        "hash": cmd_hash,
        "encrypt-proof": cmd_encrypt_proof,
        "decrypt-proof": cmd_decrypt_proof,
        "keygen": cmd_keygen,
        "process": cmd_process,
    }
    if args.command not in commands:
        parser.print_help()
        return 0
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
