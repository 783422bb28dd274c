"""
OIDC discovery: fetch ``/.well-known/openid-configuration`` and keep the four
endpoints the flow needs.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .errors import (
    DiscoveryMissingFieldError,
    DiscoveryNetworkError,
    DiscoveryParseError,
    DiscoveryStatusError,
    TransportError,
)
from .transport import UrllibTransport

WELL_KNOWN_PATH = "/.well-known/openid-configuration"

# (document key, EndpointSet attribute), checked in this order
REQUIRED_FIELDS = (
    ("authorization_endpoint", "authorization_endpoint"),
    ("token_endpoint", "token_endpoint"),
    ("userinfo_endpoint", "userinfo_endpoint"),
    ("jwks_uri", "jwks_endpoint"),
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointSet:
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    jwks_endpoint: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


def well_known_url(issuer: str) -> str:
    return f"{issuer.rstrip('/')}{WELL_KNOWN_PATH}"


def endpoints_from_document(document: Any) -> EndpointSet:
    """Build an EndpointSet, naming the first required field that is absent."""
    if not isinstance(document, dict):
        raise DiscoveryParseError("Discovery document is not a JSON object")
    values = {}
    for key, attribute in REQUIRED_FIELDS:
        value = document.get(key)
        if not isinstance(value, str) or not value:
            raise DiscoveryMissingFieldError(key)
        values[attribute] = value
    return EndpointSet(**values)


class WellKnownResolver:
    """Single-attempt discovery. No defaults are filled in and nothing is cached."""

    def __init__(self, transport: Optional[Any] = None):
        self.transport = transport or UrllibTransport()

    def resolve(self, issuer: str) -> EndpointSet:
        return self.resolve_from(well_known_url(issuer))

    def resolve_from(self, url: str) -> EndpointSet:
        logger.info("Fetching OIDC discovery metadata from %s", url)
        try:
            response = self.transport.get(url)
        except TransportError as exc:
            raise DiscoveryNetworkError(str(exc)) from exc

        if not response.ok:
            raise DiscoveryStatusError(url, response.status, response.payload)

        try:
            document = response.json()
        except ValueError as exc:
            raise DiscoveryParseError(
                f"Discovery document from {url} is not valid JSON: {exc}"
            ) from exc

        endpoints = endpoints_from_document(document)
        logger.debug("Discovered endpoints: %s", endpoints)
        return endpoints
