#!/usr/bin/env python3
"""Sign a daily snapshot payload for submission to the generation ledger.

Usage:
    # Create a signing key once (SECP256K1, PEM):
    python scripts/sign_snapshot.py --generate-key keys/data-team.pem

    # Sign against a running ledger's domain and submit:
    python scripts/sign_snapshot.py snapshot.json --key keys/data-team.pem \
        --ledger-url http://localhost:8000 --api-key gl_sk_... --submit

    # Sign offline against the locally configured domain:
    python scripts/sign_snapshot.py snapshot.json --key keys/data-team.pem

The payload file holds the snapshot fields (station_id, date, the three
x10 energy totals, sample_count, evidence_hash).  The script prints the
submission body ({"payload": ..., "signature": ...}) as JSON.
"""

import argparse
import json
import sys
from pathlib import Path

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from generation_ledger.core import attestation
from generation_ledger.core.attestation import AttestationDomain
from generation_ledger.models.payloads import SnapshotPayload


def generate_key(path: Path) -> None:
    private_key = ec.generate_private_key(attestation.CURVE)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    print(f"Wrote key to {path} (identity {attestation.identity_of(private_key.public_key())})")


def fetch_domain(ledger_url: str) -> AttestationDomain:
    resp = httpx.get(f"{ledger_url}/api/v1/attestation/domain", timeout=10.0)
    resp.raise_for_status()
    data = resp.json()
    return AttestationDomain(
        name=data["name"],
        version=data["version"],
        chain_id=data["chain_id"],
        verifying_entity=data["verifying_entity"],
    )


def main():
    parser = argparse.ArgumentParser(description="Sign a daily snapshot payload")
    parser.add_argument("payload", nargs="?", help="Path to the snapshot payload JSON")
    parser.add_argument("--key", help="PEM-encoded SECP256K1 private key")
    parser.add_argument("--generate-key", metavar="PATH", help="Write a new signing key and exit")
    parser.add_argument("--ledger-url", default=None, help="Ledger base URL to read the domain from")
    parser.add_argument("--api-key", default=None, help="Bearer key used with --submit")
    parser.add_argument("--submit", action="store_true", help="POST the signed snapshot to the ledger")
    args = parser.parse_args()

    if args.generate_key:
        generate_key(Path(args.generate_key))
        return

    if not args.payload or not args.key:
        parser.error("payload and --key are required unless --generate-key is given")

    payload = SnapshotPayload.model_validate_json(Path(args.payload).read_text())
    private_key = serialization.load_pem_private_key(Path(args.key).read_bytes(), password=None)

    domain = fetch_domain(args.ledger_url) if args.ledger_url else AttestationDomain.from_settings()
    digest = attestation.digest(payload, domain)
    signature = attestation.sign_digest(private_key, digest)

    body = {"payload": payload.model_dump(), "signature": signature.hex()}
    print(json.dumps(body, indent=2))
    print(f"digest={digest.hex()} signer={attestation.identity_of(private_key.public_key())}", file=sys.stderr)

    if args.submit:
        if not (args.ledger_url and args.api_key):
            parser.error("--submit needs --ledger-url and --api-key")
        resp = httpx.post(
            f"{args.ledger_url}/api/v1/snapshots",
            json=body,
            headers={"Authorization": f"Bearer {args.api_key}"},
            timeout=10.0,
        )
        print(f"  → {resp.status_code}: {resp.text}", file=sys.stderr)
        if resp.status_code != 201:
            sys.exit(1)


if __name__ == "__main__":
    main()
