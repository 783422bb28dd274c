"""
Authorization-code flow against an OpenID Connect provider.

:class:`OidcClient` runs discovery when it is created, then builds the
authorization URL, waits for the redirect, and talks to the token and userinfo
endpoints. One instance drives one attempt at a time.
"""
from __future__ import annotations

import hmac
import json
import logging
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .callback_listener import DEFAULT_REDIRECT_URL, CallbackListener, CallbackResult
from .errors import (
    FlowNetworkError,
    FlowParseError,
    InvalidResponseError,
    SegmentDecodeError,
    StateMismatchError,
    TokenMissingFieldError,
    TransportError,
)
from .transport import UrllibTransport, encode_query
from .unverified_jwt import UnverifiedToken, decode_unverified
from .well_known import EndpointSet, WellKnownResolver

DEFAULT_SCOPE = ["openid"]
STATE_LENGTH = 32
STATE_ALPHABET = string.ascii_letters + string.digits

logger = logging.getLogger(__name__)


def generate_state(length: int = STATE_LENGTH) -> str:
    return "".join(secrets.choice(STATE_ALPHABET) for _ in range(length))


@dataclass
class ClientConfiguration:
    issuer: str
    client_id: str
    client_secret: str = field(repr=False)
    redirect_url: str = DEFAULT_REDIRECT_URL
    scope: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPE))
    csrf_state: Optional[str] = None

    def summary(self) -> List[Tuple[str, str]]:
        return [
            ("Issuer", self.issuer),
            ("Client ID", self.client_id),
            ("Client Secret", f"loaded ({len(self.client_secret)} chars)" if self.client_secret else "not set"),
            ("Redirect URL", self.redirect_url),
            ("Scope", " ".join(self.scope)),
        ]


@dataclass
class TokenResponse:
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None
    # decoded for display only; never verified
    unverified_id_token: Optional[UnverifiedToken] = field(
        default=None, repr=False, compare=False
    )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenResponse":
        """Reject the whole response if a required field is absent or mistyped."""
        for name in ("access_token", "token_type"):
            if not isinstance(payload.get(name), str):
                raise TokenMissingFieldError(name)
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in < 0:
            raise TokenMissingFieldError("expires_in")

        def optional(name: str) -> Optional[str]:
            value = payload.get(name)
            return value if isinstance(value, str) else None

        return cls(
            access_token=payload["access_token"],
            token_type=payload["token_type"],
            expires_in=expires_in,
            refresh_token=optional("refresh_token"),
            scope=optional("scope"),
            id_token=optional("id_token"),
        )

    def as_dict(self) -> Dict[str, Any]:
        data = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "refresh_token": self.refresh_token,
            "scope": self.scope,
            "id_token": self.id_token,
        }
        return {k: v for k, v in data.items() if v is not None}


class OidcClient:
    """
    Relying-party side of the authorization-code flow.

    Args:
        issuer: Provider issuer URL; discovery reads ``{issuer}/.well-known/openid-configuration``.
        client_id: Registered client ID.
        client_secret: Client secret sent to the token endpoint.
        redirect_url: Where the provider sends the browser back to. The local
            callback listener binds to its host and port.
        scope: Scopes to request (default ``["openid"]``).
        state: Fixed CSRF state. When omitted a new random state is generated
            every time an authorization URL is built.
        transport: HTTP transport (``get``/``post_form``); defaults to urllib.
        discovery_url: Explicit discovery document URL, overriding the issuer.

    Raises:
        DiscoveryError: discovery failed; no client is created.
    """

    def __init__(
        self,
        issuer: str,
        client_id: str,
        client_secret: str,
        redirect_url: str = DEFAULT_REDIRECT_URL,
        scope: Optional[List[str]] = None,
        state: Optional[str] = None,
        *,
        transport: Optional[Any] = None,
        discovery_url: Optional[str] = None,
    ):
        self.config = ClientConfiguration(
            issuer=issuer,
            client_id=client_id,
            client_secret=client_secret,
            redirect_url=redirect_url,
            scope=list(scope) if scope else list(DEFAULT_SCOPE),
        )
        self._fixed_state = state
        self._authorization_parameters: List[Tuple[str, str]] = []
        self.transport = transport or UrllibTransport()

        resolver = WellKnownResolver(self.transport)
        if discovery_url:
            self._endpoints = resolver.resolve_from(discovery_url)
        else:
            self._endpoints = resolver.resolve(issuer)

    @property
    def endpoints(self) -> EndpointSet:
        return self._endpoints

    def build_authorization_url(self) -> str:
        """Store a CSRF state for this attempt and return the login URL."""
        state = self._fixed_state or generate_state()
        self.config.csrf_state = state

        params = [
            ("response_type", "code"),
            ("client_id", self.config.client_id),
            ("redirect_uri", self.config.redirect_url),
            ("scope", " ".join(self.config.scope)),
            ("state", state),
            ("access_type", "offline"),
        ]
        self._authorization_parameters = params

        endpoint = self._endpoints.authorization_endpoint
        separator = "&" if "?" in endpoint else "?"
        return f"{endpoint}{separator}{encode_query(dict(params), safe=':/')}"

    def authorization_parameters(self) -> List[Tuple[str, str]]:
        return list(self._authorization_parameters)

    def wait_for_code(
        self,
        timeout: Optional[float] = None,
        listener: Optional[CallbackListener] = None,
        stop_on_error: bool = False,
    ) -> CallbackResult:
        listener = listener or CallbackListener(
            self.config.redirect_url, stop_on_error=stop_on_error
        )
        return listener.listen(timeout=timeout)

    def verify_state(self, returned_state: Optional[str]) -> None:
        expected = self.config.csrf_state
        if not expected:
            raise StateMismatchError("No authorization request has been issued yet")
        if not returned_state or not hmac.compare_digest(expected, returned_state):
            raise StateMismatchError(
                "State returned by the authorization server does not match the request"
            )

    def get_token(self, code: str) -> TokenResponse:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_url,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        return self._token_request("Token", data)

    def refresh_token(self, refresh_token: str) -> TokenResponse:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        return self._token_request("Refresh token", data)

    def get_user_info(self, access_token: str) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        url = self._endpoints.userinfo_endpoint
        try:
            response = self.transport.get(url, headers)
        except TransportError as exc:
            raise FlowNetworkError(str(exc)) from exc
        if not response.ok:
            logger.error("User info request failed with status: %s", response.status)
            raise InvalidResponseError("User info", response.status, response.payload)
        return self._json_object(response, "User info")

    def _token_request(self, operation: str, data: Dict[str, str]) -> TokenResponse:
        url = self._endpoints.token_endpoint
        logger.info("%s request to %s (grant_type=%s)", operation, url, data["grant_type"])
        try:
            response = self.transport.post_form(url, data)
        except TransportError as exc:
            raise FlowNetworkError(str(exc)) from exc
        if not response.ok:
            logger.error("%s request failed with status: %s", operation, response.status)
            raise InvalidResponseError(operation, response.status, response.payload)

        tokens = TokenResponse.from_payload(self._json_object(response, operation))
        logger.info(
            "Received access token (length %d chars, expires in %ds, refresh token issued: %s).",
            len(tokens.access_token),
            tokens.expires_in,
            "yes" if tokens.refresh_token else "no",
        )
        if tokens.id_token:
            tokens.unverified_id_token = self._inspect_id_token(tokens.id_token)
        return tokens

    @staticmethod
    def _inspect_id_token(id_token: str) -> Optional[UnverifiedToken]:
        try:
            return decode_unverified(id_token)
        except SegmentDecodeError as exc:
            logger.warning("Failed to decode ID token for display: %s", exc)
            return None

    @staticmethod
    def _json_object(response: Any, operation: str) -> Dict[str, Any]:
        try:
            parsed = response.json()
        except ValueError as exc:
            raise FlowParseError(f"{operation} response is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise FlowParseError(
                f"{operation} response is not a JSON object: {json.dumps(parsed)[:200]}"
            )
        return parsed
