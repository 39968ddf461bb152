import hashlib

import pytest

from profrate.utils.passwords import (
    check_password_strength,
    hash_password,
    is_legacy_hash,
    needs_rehash,
    verify_password,
)


def test_hash_and_verify_roundtrip():
    encoded = hash_password("Correct-Horse-9")
    assert encoded.startswith("$argon2id$")
    assert verify_password("Correct-Horse-9", encoded) is True
    assert verify_password("correct-horse-9", encoded) is False


def test_hashes_are_salted():
    assert hash_password("Same-Input-1") != hash_password("Same-Input-1")


def test_legacy_sha256_verifies_and_needs_rehash():
    legacy = hashlib.sha256(b"OldSecret!42").hexdigest()
    assert is_legacy_hash(legacy)
    assert verify_password("OldSecret!42", legacy) is True
    assert verify_password("wrong", legacy) is False
    assert needs_rehash(legacy) is True


def test_fresh_argon2_hash_does_not_need_rehash():
    assert needs_rehash(hash_password("Fresh-Hash-7")) is False


@pytest.mark.parametrize("encoded", ["", "plaintext", "$2b$12$notargon"])
def test_unknown_or_empty_hash_never_verifies(encoded):
    assert verify_password("anything", encoded) is False


def test_empty_password_never_verifies():
    assert verify_password("", hash_password("Non-Empty-1")) is False


def test_strength_scoring_accepts_mixed_password():
    result = check_password_strength("Str0ng!Passw0rd")
    assert result.valid is True
    assert result.score == 90
    assert result.feedback == []


def test_strength_rejects_short_password_with_feedback():
    result = check_password_strength("aB3!")
    assert result.valid is False
    assert "Use at least 8 characters" in result.feedback


def test_strength_penalizes_common_patterns():
    plain = check_password_strength("Zebra#Lamp7")
    common = check_password_strength("Password#17")
    assert common.score == plain.score - 20
    assert "Avoid common patterns" in common.feedback


def test_strength_rejects_overlong_password():
    result = check_password_strength("Aa1!" * 40)
    assert result.valid is False
    assert any("at most 128" in msg for msg in result.feedback)


def test_lowercase_only_password_is_too_weak():
    # 8 chars (20) + lowercase (15) = 35 < 40
    result = check_password_strength("abcdefgh")
    assert result.valid is False
    assert result.score == 35
