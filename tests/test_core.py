# tests/test_core.py
import hashlib
import threading

import pytest

from docledger.core.canon import canonical_json, canonical_json_str
from docledger.core.encoding import b64url_decode, b64url_encode, hex_prefixed
from docledger.core.errors import InvalidTransition
from docledger.core.types import (
    AttemptState,
    ClassifiedError,
    DocumentRecord,
    ErrorCategory,
    Issuer,
    OperationKind,
    TransactionAttempt,
    ZERO_ADDRESS,
)
from docledger.crypto.hashing import digest, digest_file, digest_source, digest_stream, is_digest, normalize_digest

EMPTY_SHA256 = "0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_issuer_immutable():
    issuer = Issuer(0, "Alice", "ExampleOrg", "a@x.test", ZERO_ADDRESS)
    with pytest.raises(AttributeError):
        issuer.name = "Mallory"


def test_missing_record_has_no_meaningful_fields():
    record = DocumentRecord.missing(EMPTY_SHA256)
    assert record.exists is False
    assert record.digest == EMPTY_SHA256
    assert record.name == ""
    assert record.created_at == 0


def test_attempt_moves_forward_only():
    attempt = TransactionAttempt(OperationKind.STORE_DOCUMENT)
    assert attempt.state is AttemptState.IDLE

    attempt.advance(AttemptState.HASHING)
    attempt.advance(AttemptState.SUBMITTING)
    attempt.advance(AttemptState.CONFIRMING)
    attempt.advance(AttemptState.SUCCEEDED)

    assert attempt.succeeded
    assert attempt.finished
    assert attempt.history == [
        AttemptState.IDLE, AttemptState.HASHING, AttemptState.SUBMITTING,
        AttemptState.CONFIRMING, AttemptState.SUCCEEDED,
    ]
    with pytest.raises(InvalidTransition):
        attempt.advance(AttemptState.FAILED)


def test_attempt_cannot_skip_confirmation():
    attempt = TransactionAttempt(OperationKind.DELETE_DOCUMENT)
    attempt.advance(AttemptState.HASHING)
    with pytest.raises(InvalidTransition):
        attempt.advance(AttemptState.SUCCEEDED)
    assert attempt.state is AttemptState.HASHING


def test_attempt_fail_attaches_error():
    attempt = TransactionAttempt(OperationKind.REGISTER_ISSUER)
    attempt.advance(AttemptState.SUBMITTING)
    error = ClassifiedError(ErrorCategory.GENERIC, "boom", "Check the log")
    attempt.fail(error)
    assert attempt.failed
    assert attempt.error is error
    assert str(error) == "Generic: boom"


def test_idle_cannot_fail_directly():
    attempt = TransactionAttempt(OperationKind.STORE_DOCUMENT)
    with pytest.raises(InvalidTransition):
        attempt.fail(ClassifiedError(ErrorCategory.GENERIC, "x", "y"))


def test_base64url_roundtrip():
    original = b'{"hello":"world"}'
    encoded = b64url_encode(original)
    assert b64url_decode(encoded) == original
    assert "=" not in encoded


def test_hex_prefixed():
    assert hex_prefixed(b"\x00\xff") == "0x00ff"


def test_canonical_json_sorting():
    messy = {"z": 1, "a": "hello", "nested": {"b": 2, "a": 1}}
    canon = canonical_json_str(messy)
    assert canon == '{"a":"hello","nested":{"a":1,"b":2},"z":1}'
    assert canonical_json(messy) == canon.encode("utf-8")


def test_digest_known_values():
    assert digest(b"") == EMPTY_SHA256
    assert digest(b"0123456789") == "0x" + hashlib.sha256(b"0123456789").hexdigest()
    assert len(digest(b"anything")) == 66


def test_digest_deterministic():
    data = b"same bytes, same key"
    assert digest(data) == digest(data) == digest(bytearray(data))
    assert digest(data) != digest(data + b"\n")


def test_digest_ignores_filename(tmp_path):
    a = tmp_path / "a.txt"
    b = tmp_path / "renamed-copy.bin"
    a.write_bytes(b"payload" * 50_000)
    b.write_bytes(b"payload" * 50_000)
    assert digest_file(a) == digest_file(b) == digest(a.read_bytes())


async def test_digest_stream_matches_digest():
    async def chunks():
        for part in (b"0123", b"", b"456789"):
            yield part

    assert await digest_stream(chunks()) == digest(b"0123456789")


async def test_digest_source_dispatch(tmp_path):
    path = tmp_path / "doc.bin"
    path.write_bytes(b"0123456789")
    expected = digest(b"0123456789")
    assert await digest_source(b"0123456789") == expected
    assert await digest_source(path) == expected
    assert await digest_source(str(path)) == expected
    with pytest.raises(TypeError):
        await digest_source(12345)


async def test_file_digest_runs_off_the_loop_thread(tmp_path, monkeypatch):
    import docledger.crypto.hashing as hashing

    path = tmp_path / "doc.bin"
    path.write_bytes(b"0123456789")
    seen = []

    def recording_digest_file(p):
        seen.append(threading.get_ident())
        return digest_file(p)

    monkeypatch.setattr(hashing, "digest_file", recording_digest_file)
    assert await digest_source(path) == digest(b"0123456789")
    assert seen and seen[0] != threading.get_ident()

    with pytest.raises(FileNotFoundError):
        await digest_source(tmp_path / "missing.bin")


def test_normalize_digest():
    bare = EMPTY_SHA256[2:].upper()
    assert normalize_digest(bare) == EMPTY_SHA256
    assert normalize_digest("  " + EMPTY_SHA256 + "\n") == EMPTY_SHA256
    assert is_digest(EMPTY_SHA256)
    assert not is_digest(bare)
    for bad in ("", "0x1234", "0x" + "g" * 64, EMPTY_SHA256 + "00"):
        with pytest.raises(ValueError):
            normalize_digest(bad)
