"""Tests for token claim decoding and subject extraction."""

from __future__ import annotations

import base64
import json

import pytest

from natsforge.domain.errors import (
    ClaimDecodeError,
    MalformedToken,
    MissingSubjectClaim,
    TokenError,
)
from natsforge.domain.tokens import decode_claims, encode_segment, extract_subject_id


def _token(payload: bytes) -> str:
    segment = base64.urlsafe_b64encode(payload).decode().rstrip("=")
    return f"eyJhbGciOiJlZDI1NTE5LW5rZXkifQ.{segment}.c2ln"


class TestExtractSubjectId:
    def test_returns_sub_claim(self) -> None:
        token = _token(json.dumps({"sub": "AABC", "name": "APP"}).encode())
        assert extract_subject_id(token) == "AABC"

    def test_unpadded_payload_is_accepted(self) -> None:
        token = _token(b'{"sub":"A12"}')
        assert len(token.split(".")[1]) % 4 != 0
        assert extract_subject_id(token) == "A12"

    def test_surrounding_whitespace_is_ignored(self) -> None:
        token = _token(json.dumps({"sub": "UXYZ"}).encode())
        assert extract_subject_id(f"  {token}\n") == "UXYZ"

    @pytest.mark.parametrize("token", ["abc", "a.b", "a.b.c.d", ""])
    def test_wrong_segment_count(self, token: str) -> None:
        with pytest.raises(MalformedToken):
            extract_subject_id(token)

    def test_payload_not_base64(self) -> None:
        with pytest.raises(ClaimDecodeError):
            extract_subject_id("h.!!!notbase64!!!.s")

    def test_payload_not_json(self) -> None:
        with pytest.raises(ClaimDecodeError):
            extract_subject_id(_token(b"not json"))

    def test_payload_not_object(self) -> None:
        with pytest.raises(ClaimDecodeError):
            extract_subject_id(_token(b'["sub"]'))

    def test_missing_sub(self) -> None:
        with pytest.raises(MissingSubjectClaim):
            extract_subject_id(_token(b'{"name":"x"}'))

    def test_non_string_sub(self) -> None:
        with pytest.raises(MissingSubjectClaim):
            extract_subject_id(_token(b'{"sub":42}'))

    def test_errors_share_token_base(self) -> None:
        with pytest.raises(TokenError) as excinfo:
            extract_subject_id("x")
        assert excinfo.value.code == "MALFORMED_TOKEN"


class TestEncodeSegment:
    def test_unpadded_and_decodable(self) -> None:
        segment = encode_segment({"sub": "A", "iat": 0})
        assert "=" not in segment
        assert decode_claims(f"h.{segment}.s") == {"iat": 0, "sub": "A"}

    def test_key_order_does_not_matter(self) -> None:
        assert encode_segment({"a": 1, "b": 2}) == encode_segment({"b": 2, "a": 1})
