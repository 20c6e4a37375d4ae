"""Domain-separated attestation digests and signer recovery for snapshots.

A snapshot digest binds every payload field, each variable-length field hashed
on its own, to the deployment's domain (name, version, chain id and verifying
entity).  The same payload therefore produces a different digest on every
deployment, and a signature made for one instance cannot be replayed against
another.

Signatures travel as an envelope: the signer's 33-byte compressed SECP256K1
public key followed by a DER-encoded ECDSA signature over the digest.  The
signer identity is ``0x`` + the last 20 bytes of the SHA-256 of the
uncompressed public point.

Everything here is pure; nothing reads or writes ledger state.
"""

import hashlib
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature as BadSignatureError
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from generation_ledger.core.config import settings
from generation_ledger.core.errors import InvalidSignature
from generation_ledger.models.payloads import SnapshotPayload

CURVE = ec.SECP256K1()
PUBLIC_KEY_LENGTH = 33
NULL_IDENTITY = "0x" + "00" * 20

DOMAIN_TYPE = "LedgerDomain(string name,string version,uint256 chainId,string verifyingEntity)"
SNAPSHOT_TYPE = (
    "DailySnapshot(string stationId,string date,uint256 totalGenerationKWh_x10,"
    "uint256 gridDeliveredKWh_x10,uint256 selfConsumedKWh_x10,uint256 sampleCount,"
    "bytes32 evidenceHash)"
)

_SIGNATURE_ALGORITHM = ec.ECDSA(Prehashed(hashes.SHA256()))


def _h(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _u256(value: int) -> bytes:
    return value.to_bytes(32, "big")


DOMAIN_TYPEHASH = _h(DOMAIN_TYPE.encode("utf-8"))
SNAPSHOT_TYPEHASH = _h(SNAPSHOT_TYPE.encode("utf-8"))


@dataclass(frozen=True)
class AttestationDomain:
    name: str
    version: str
    chain_id: int
    verifying_entity: str

    @classmethod
    def from_settings(cls) -> "AttestationDomain":
        return cls(
            name=settings.domain_name,
            version=settings.domain_version,
            chain_id=settings.chain_id,
            verifying_entity=settings.verifying_entity,
        )

    def separator(self) -> bytes:
        return _h(
            DOMAIN_TYPEHASH
            + _h(self.name.encode("utf-8"))
            + _h(self.version.encode("utf-8"))
            + _u256(self.chain_id)
            + _h(self.verifying_entity.encode("utf-8"))
        )


def struct_hash(payload: SnapshotPayload) -> bytes:
    return _h(
        SNAPSHOT_TYPEHASH
        + _h(payload.station_id.encode("utf-8"))
        + _h(payload.date.encode("utf-8"))
        + _u256(payload.total_generation_kwh_x10)
        + _u256(payload.grid_delivered_kwh_x10)
        + _u256(payload.self_consumed_kwh_x10)
        + _u256(payload.sample_count)
        + bytes.fromhex(payload.evidence_hash)
    )


def digest(payload: SnapshotPayload, domain: AttestationDomain) -> bytes:
    """Return the 32-byte digest a signer endorses for ``payload`` on ``domain``."""
    return _h(b"\x19\x01" + domain.separator() + struct_hash(payload))


def identity_of(public_key: ec.EllipticCurvePublicKey) -> str:
    point = public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return "0x" + _h(point[1:])[-20:].hex()


def sign_digest(private_key: ec.EllipticCurvePrivateKey, message_digest: bytes) -> bytes:
    """Produce a signature envelope for ``message_digest``.

    Used by the data team's signing tooling; the ledger itself only verifies.
    """
    public_point = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.CompressedPoint,
    )
    return public_point + private_key.sign(message_digest, _SIGNATURE_ALGORITHM)


def decode_signature(signature_hex: str) -> bytes:
    try:
        return bytes.fromhex(signature_hex.removeprefix("0x"))
    except ValueError as exc:
        raise InvalidSignature("Signature is not valid hex") from exc


def recover(message_digest: bytes, signature: bytes) -> str:
    """Return the identity that signed ``message_digest``.

    Raises:
        InvalidSignature: The envelope is malformed, the signature does not
            verify against the digest, or the identity is the null identity.
    """
    if len(signature) <= PUBLIC_KEY_LENGTH:
        raise InvalidSignature("Signature envelope is too short")

    point, der_signature = signature[:PUBLIC_KEY_LENGTH], signature[PUBLIC_KEY_LENGTH:]
    try:
        public_key = ec.EllipticCurvePublicKey.from_encoded_point(CURVE, point)
        public_key.verify(der_signature, message_digest, _SIGNATURE_ALGORITHM)
    except (ValueError, BadSignatureError) as exc:
        raise InvalidSignature("Signature does not verify against the digest") from exc

    identity = identity_of(public_key)
    if identity == NULL_IDENTITY:
        raise InvalidSignature("Signature recovers to the null identity")
    return identity
