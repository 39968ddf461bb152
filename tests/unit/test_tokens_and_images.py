import base64

import pytest

from profrate.utils.images import decode_data_url, validate_image_reference
from profrate.utils.tokens import (
    CSRF_TOKEN_TTL_SECONDS,
    csrf_record_valid,
    hash_token,
    new_csrf_token,
    tokens_match,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


def test_csrf_token_shape_and_expiry():
    record = new_csrf_token(now=1000.0)
    assert len(record["token"]) == 64
    int(record["token"], 16)
    assert record["expires_at"] == 1000.0 + CSRF_TOKEN_TTL_SECONDS
    assert csrf_record_valid(record, now=1000.0 + CSRF_TOKEN_TTL_SECONDS - 1)
    assert not csrf_record_valid(record, now=1000.0 + CSRF_TOKEN_TTL_SECONDS)


@pytest.mark.parametrize("record", [None, {}, {"token": ""}, {"token": "abc"}])
def test_incomplete_csrf_records_are_invalid(record):
    assert not csrf_record_valid(record)


def test_tokens_match_treats_missing_as_mismatch():
    assert tokens_match("abc", "abc")
    assert not tokens_match("abc", "abd")
    assert not tokens_match(None, "abc")
    assert not tokens_match("", "")


def test_hash_token_is_stable_sha256_hex():
    assert hash_token("t") == hash_token("t")
    assert len(hash_token("t")) == 64


def test_decode_png_data_url():
    image = decode_data_url(PNG_DATA_URL)
    assert image.content_type == "image/png"
    assert image.data == PNG_BYTES


@pytest.mark.parametrize(
    "value,message",
    [
        ("data:text/html;base64,PGI+", "Unsupported image type"),
        ("data:image/png,rawbytes", "base64 data URL"),
        ("data:image/png;base64,", "base64 data URL"),
    ],
)
def test_decode_rejects_bad_data_urls(value, message):
    with pytest.raises(ValueError, match=message):
        decode_data_url(value)


def test_decode_enforces_size_limit(monkeypatch):
    monkeypatch.setenv("MAX_PROFILE_IMAGE_BYTES", "8")
    with pytest.raises(ValueError, match="exceeds 8 bytes"):
        decode_data_url(PNG_DATA_URL)


def test_validate_image_reference_accepts_https_and_data_urls():
    assert validate_image_reference(" https://cdn.example.com/a.png ") == "https://cdn.example.com/a.png"
    assert validate_image_reference(PNG_DATA_URL) == PNG_DATA_URL


@pytest.mark.parametrize("value", ["http://cdn.example.com/a.png", "javascript:alert(1)", "", "https://"])
def test_validate_image_reference_rejects_other_schemes(value):
    with pytest.raises(ValueError):
        validate_image_reference(value)
