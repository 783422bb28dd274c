import base64
import json

import pytest

from oidc_test_cli.errors import (
    MalformedStructureError,
    SegmentBase64Error,
    SegmentDecodeError,
    SegmentJsonError,
)
from oidc_test_cli.unverified_jwt import decode_unverified, fix_base64_padding


def _segment(obj) -> str:
    raw = json.dumps(obj).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def make_token(header=None, payload=None, signature="c2lnbmF0dXJl"):
    header = header if header is not None else {"alg": "RS256", "kid": "key-1"}
    payload = payload if payload is not None else {"sub": "alice", "aud": "abc"}
    return f"{_segment(header)}.{_segment(payload)}.{signature}"


def test_decode_unverified_returns_header_and_payload():
    token = make_token(payload={"sub": "alice", "name": "Ålice ✓"})
    header, payload = decode_unverified(token)
    assert header == {"alg": "RS256", "kid": "key-1"}
    assert payload == {"sub": "alice", "name": "Ålice ✓"}


def test_signature_segment_is_never_decoded():
    token = make_token(signature="!!! not base64 at all !!!")
    assert decode_unverified(token).payload["sub"] == "alice"


@pytest.mark.parametrize("token", ["only.two", "a.b.c.d", "", "no-dots"])
def test_wrong_segment_count_is_malformed(token):
    with pytest.raises(MalformedStructureError):
        decode_unverified(token)


def test_non_string_token_is_malformed():
    with pytest.raises(MalformedStructureError):
        decode_unverified(None)


@pytest.mark.parametrize(
    "header_segment",
    ["not*base64", "eyJhbGciOiJSUzI1NiJ9=", "abcde"],
)
def test_non_base64_segment_fails_with_base64_error(header_segment):
    token = f"{header_segment}.{_segment({'sub': 'x'})}.sig"
    with pytest.raises(SegmentBase64Error):
        decode_unverified(token)


def test_payload_that_is_not_json_fails_with_json_error():
    not_json = base64.urlsafe_b64encode(b"hello world").decode().rstrip("=")
    with pytest.raises(SegmentJsonError):
        decode_unverified(f"{_segment({'alg': 'none'})}.{not_json}.sig")


def test_payload_that_is_not_an_object_fails_with_json_error():
    with pytest.raises(SegmentJsonError):
        decode_unverified(make_token(payload=["a", "b"]))


def test_all_failures_share_a_base_class():
    for token in ("x.y", "**.**.**"):
        with pytest.raises(SegmentDecodeError):
            decode_unverified(token)


def test_fix_base64_padding():
    assert fix_base64_padding("abcd") == "abcd"
    assert fix_base64_padding("abc") == "abc="
    assert fix_base64_padding("ab") == "ab=="
