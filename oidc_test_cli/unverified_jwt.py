"""
Decode the header and payload of a compact JWT *without* verifying it.

Nothing returned from here is authenticated. It exists so a person can look
at the claims of an ID token during a test run; never base an access decision
on it.
"""
from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Dict, NamedTuple

from .errors import MalformedStructureError, SegmentBase64Error, SegmentJsonError

_BASE64URL = re.compile(r"^[A-Za-z0-9_-]*$")


class UnverifiedToken(NamedTuple):
    header: Dict[str, Any]
    payload: Dict[str, Any]


def fix_base64_padding(segment: str) -> str:
    """
    Add the '=' padding that JWTs strip, so the stdlib decoder accepts the
    segment. No extra '=' is added if the length is already a multiple of 4.
    """
    remainder = len(segment) % 4
    if remainder == 0:
        return segment
    return segment + ("=" * (4 - remainder))


def _decode_segment(segment: str, label: str) -> Dict[str, Any]:
    if not _BASE64URL.match(segment):
        raise SegmentBase64Error(f"JWT {label} is not unpadded base64url")
    try:
        raw = base64.b64decode(fix_base64_padding(segment), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SegmentBase64Error(f"JWT {label} is not valid base64url: {exc}") from exc

    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise SegmentJsonError(f"JWT {label} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise SegmentJsonError(f"JWT {label} is not a JSON object")
    return parsed


def decode_unverified(compact_token: str) -> UnverifiedToken:
    """
    Split ``compact_token`` into its three segments and decode the first two.

    The signature segment is never looked at.

    Raises:
        MalformedStructureError: not a string of exactly three '.'-separated parts.
        SegmentBase64Error: header or payload is not unpadded base64url.
        SegmentJsonError: header or payload is not a JSON object.
    """
    if isinstance(compact_token, bytes):
        compact_token = compact_token.decode("utf-8", errors="replace")
    if not isinstance(compact_token, str):
        raise MalformedStructureError("Token must be a string")

    parts = compact_token.split(".")
    if len(parts) != 3:
        raise MalformedStructureError(
            f"Invalid JWT format: expected 3 segments, got {len(parts)}"
        )

    header = _decode_segment(parts[0], "header")
    payload = _decode_segment(parts[1], "payload")
    return UnverifiedToken(header, payload)
