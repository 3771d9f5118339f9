# docledger/crypto/hashing.py
"""
Content digests.

Store, verify and delete all go through `digest` so the same file bytes always
map to the same ledger key, whatever the operation or the file's name.
"""

import asyncio
import hashlib
import re
from pathlib import Path
from typing import Any, AsyncIterable, Union

from docledger.core.canon import canonical_json
from docledger.core.encoding import hex_prefixed

DIGEST_HEX_LENGTH = 64
CHUNK_SIZE = 64 * 1024

_DIGEST_RE = re.compile(r"^(0x)?([0-9a-fA-F]{64})$")


def digest(data: bytes) -> str:
    """SHA-256 over the exact bytes, as 0x-prefixed lowercase hex."""
    return hex_prefixed(hashlib.sha256(data).digest())


def digest_file(path: Union[str, Path]) -> str:
    """Same value as digest(path.read_bytes()), read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return hex_prefixed(h.digest())


async def digest_stream(chunks: AsyncIterable[bytes]) -> str:
    """Hash an asynchronous byte source (e.g. an upload being streamed in)."""
    h = hashlib.sha256()
    async for chunk in chunks:
        h.update(chunk)
    return hex_prefixed(h.digest())


async def digest_source(source: Union[bytes, bytearray, str, Path, AsyncIterable[bytes]]) -> str:
    """
    Digest whatever the user picked: raw bytes, a file path, or an async byte
    stream. Every operation hashes its input through here.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return digest(bytes(source))
    if isinstance(source, (str, Path)):
        # blocking reads stay off the event loop
        return await asyncio.to_thread(digest_file, source)
    if hasattr(source, "__aiter__"):
        return await digest_stream(source)
    raise TypeError(f"Cannot hash a {type(source).__name__}")


def source_label(source) -> str:
    """Human-readable name for a hashing source (file name where there is one)."""
    if isinstance(source, (str, Path)):
        return Path(source).name
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes>"
    return "<stream>"


def normalize_digest(value: str) -> str:
    """Accept 0x-prefixed or bare hex in any case; return the canonical form."""
    match = _DIGEST_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Not a 32-byte hex digest: {value!r}")
    return "0x" + match.group(2).lower()


def is_digest(value: Any) -> bool:
    """True only for the canonical form produced by digest()."""
    if not isinstance(value, str) or not value.startswith("0x"):
        return False
    return _DIGEST_RE.match(value) is not None and value == value.lower()


def transaction_hash(signed_tx: dict) -> str:
    """Remote reference of a signed transaction: sha256 over its canonical JSON."""
    return digest(canonical_json(signed_tx))
