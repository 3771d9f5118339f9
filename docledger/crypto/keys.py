# docledger/crypto/keys.py
import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from docledger.core.canon import canonical_json
from docledger.core.encoding import b64url_decode, b64url_encode, hex_prefixed


def address_from_public_bytes(raw: bytes) -> str:
    """Ledger identity: 0x + last 20 bytes of sha256(raw public key)."""
    return hex_prefixed(hashlib.sha256(raw).digest()[-20:])


@dataclass(frozen=True)
class SignedTransaction:
    payload: dict          # {from, to, method, args, nonce}
    public_key: str        # base64url raw Ed25519 public key
    signature: str         # base64url signature over canonical_json(payload)

    def to_dict(self) -> dict:
        return {"payload": self.payload, "public_key": self.public_key, "signature": self.signature}


class SignerKeyPair:
    """Ed25519 key pair backing one wallet identity."""

    def __init__(self, private_key: Optional[Ed25519PrivateKey] = None,
                 public_key: Optional[Ed25519PublicKey] = None):
        if private_key is None and public_key is None:
            raise ValueError("Either a private or a public key is required")
        self._private = private_key
        self._public = public_key or private_key.public_key()

    @classmethod
    def generate(cls) -> "SignerKeyPair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_b64url(cls, value: str) -> "SignerKeyPair":
        return cls(Ed25519PrivateKey.from_private_bytes(b64url_decode(value.strip())))

    @classmethod
    def from_public_b64url(cls, value: str) -> "SignerKeyPair":
        """Verification-only pair (cannot sign)."""
        return cls(public_key=Ed25519PublicKey.from_public_bytes(b64url_decode(value)))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SignerKeyPair":
        return cls.from_private_b64url(Path(path).read_text(encoding="utf-8"))

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.private_key_b64url() + "\n", encoding="utf-8")
        path.chmod(0o600)
        return path

    @property
    def can_sign(self) -> bool:
        return self._private is not None

    def public_key_bytes(self) -> bytes:
        return self._public.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def public_key_b64url(self) -> str:
        return b64url_encode(self.public_key_bytes())

    def private_key_b64url(self) -> str:
        if self._private is None:
            raise ValueError("Verification-only key pair has no private key")
        raw = self._private.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return b64url_encode(raw)

    @property
    def address(self) -> str:
        return address_from_public_bytes(self.public_key_bytes())

    def sign_bytes(self, data: bytes) -> bytes:
        if self._private is None:
            raise ValueError("Verification-only key pair cannot sign")
        return self._private.sign(data)

    def verify_bytes(self, signature: bytes, data: bytes) -> bool:
        try:
            self._public.verify(signature, data)
            return True
        except InvalidSignature:
            return False

    def sign_transaction(self, payload: dict) -> SignedTransaction:
        """Sign the RFC 8785 canonical form of a transaction payload."""
        if payload.get("from") != self.address:
            raise ValueError("Transaction sender does not match signing key")
        signature = self.sign_bytes(canonical_json(payload))
        return SignedTransaction(
            payload=payload,
            public_key=self.public_key_b64url(),
            signature=b64url_encode(signature),
        )

    def __repr__(self):
        return f"SignerKeyPair(address={self.address!r})"
