"""
Exceptions raised by oidc-test-cli.
"""
from __future__ import annotations


class OidcError(Exception):
    """Base class for every error raised by this package."""
    code = "oidc_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.name = self.__class__.__name__


class TransportError(OidcError):
    """The HTTP request never produced a response (DNS, refused, timeout...)."""
    code = "transport_error"

    def __init__(self, url: str, reason: str):
        super().__init__(f"Request to {url} failed: {reason}")
        self.url = url
        self.reason = reason


# Discovery


class DiscoveryError(OidcError):
    code = "discovery_error"


class DiscoveryNetworkError(DiscoveryError):
    code = "discovery_network_error"


class DiscoveryStatusError(DiscoveryError):
    code = "discovery_status_error"

    def __init__(self, url: str, status: int, body: str = ""):
        super().__init__(
            f"Failed to fetch well-known configuration from {url}: HTTP {status}"
        )
        self.url = url
        self.status = status
        self.body = body


class DiscoveryMissingFieldError(DiscoveryError):
    code = "discovery_missing_field"

    def __init__(self, field: str):
        super().__init__(f"Discovery document is missing '{field}'")
        self.field = field


class DiscoveryParseError(DiscoveryError):
    code = "discovery_parse_error"


# Authorization code / token flow


class FlowError(OidcError):
    code = "flow_error"


class FlowNetworkError(FlowError):
    code = "flow_network_error"


class InvalidResponseError(FlowError):
    """Non-2xx answer from the token or userinfo endpoint; the body is echoed."""
    code = "invalid_response"

    def __init__(self, operation: str, status: int, body: str):
        super().__init__(
            f"{operation} request failed with status: {status}, body: {body}"
        )
        self.operation = operation
        self.status = status
        self.body = body


class TokenMissingFieldError(FlowError):
    code = "token_missing_field"

    def __init__(self, field: str):
        super().__init__(f"Token response is missing or has an invalid '{field}'")
        self.field = field


class FlowParseError(FlowError):
    code = "flow_parse_error"


class StateMismatchError(FlowError):
    code = "state_mismatch"


# Callback listener


class CallbackListenerError(OidcError):
    code = "callback_listener_error"


class CallbackBindError(CallbackListenerError):
    code = "callback_bind_error"


class NoCodeReceivedError(CallbackListenerError):
    code = "no_code_received"


class CallbackTimeoutError(NoCodeReceivedError):
    code = "callback_timeout"


class AuthorizationDeniedError(CallbackListenerError):
    """The provider redirected back with an ``error`` instead of a code."""
    code = "authorization_denied"

    def __init__(self, error: str, error_description: str | None = None):
        message = f"Authorization failed: {error}"
        if error_description:
            message = f"{message} ({error_description})"
        super().__init__(message)
        self.error = error
        self.error_description = error_description


# Unverified JWT decoding


class SegmentDecodeError(OidcError):
    code = "segment_decode_error"


class MalformedStructureError(SegmentDecodeError):
    code = "malformed_structure"


class SegmentBase64Error(SegmentDecodeError):
    code = "segment_base64_error"


class SegmentJsonError(SegmentDecodeError):
    code = "segment_json_error"
