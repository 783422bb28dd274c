"""Command-line OpenID Connect relying-party test client."""
from .callback_listener import DEFAULT_REDIRECT_URL, CallbackListener, CallbackResult
from .client import ClientConfiguration, OidcClient, TokenResponse
from .unverified_jwt import UnverifiedToken, decode_unverified
from .well_known import EndpointSet, WellKnownResolver

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_REDIRECT_URL",
    "CallbackListener",
    "CallbackResult",
    "ClientConfiguration",
    "EndpointSet",
    "OidcClient",
    "TokenResponse",
    "UnverifiedToken",
    "WellKnownResolver",
    "decode_unverified",
]
