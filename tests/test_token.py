"""Tests for bearer token encoding and decoding."""

import base64

import pytest

from settings_cloud.auth.token import decode, encode, issue_token
from settings_cloud.errors import TokenDecodeError

USER = "123456789012345678"
SECRET = "f9cc0ee09932d9f3ca9cbb451ebc8eef"
TOKEN = "ZjljYzBlZTA5OTMyZDlmM2NhOWNiYjQ1MWViYzhlZWY6MTIzNDU2Nzg5MDEyMzQ1Njc4"


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


def test_encode_known_token() -> None:
    """Token is base64 of "<secret>:<user_id>"."""
    assert encode(USER, SECRET) == TOKEN


def test_issue_token_uses_derived_secret() -> None:
    assert issue_token(USER) == TOKEN


def test_decode_round_trip() -> None:
    """decode(encode(...)) returns the user id and secret bytes."""
    assert decode(encode(USER, SECRET)) == (USER, SECRET.encode())


def test_decode_tolerates_surrounding_whitespace() -> None:
    assert decode(f"  {TOKEN}\n") == (USER, SECRET.encode())


@pytest.mark.parametrize(
    "token",
    [
        "not base64!!",
        "abc",  # bad padding
        _b64("no-separator"),
        _b64("a:b:123"),
        _b64(":123"),
        _b64("secret:"),
        _b64("secret:12ab"),
        _b64("secret:-12"),
        _b64("secret:" + "1" * 21),
    ],
)
def test_decode_rejects_malformed(token: str) -> None:
    """Malformed base64, wrong separator count, empty secret or non-numeric id fail."""
    with pytest.raises(TokenDecodeError):
        decode(token)


def test_decode_rejects_invalid_utf8() -> None:
    token = base64.b64encode(b"\xff\xfe:123").decode()
    with pytest.raises(TokenDecodeError):
        decode(token)


def test_encode_rejects_non_numeric_user_id() -> None:
    with pytest.raises(ValueError):
        encode("abc", SECRET)


def test_decode_does_not_check_secret() -> None:
    """Decoding a wrong secret still succeeds; verification happens elsewhere."""
    assert decode(_b64("wrong:42")) == ("42", b"wrong")
