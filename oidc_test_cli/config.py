"""
Command-line defaults read from a ``.env`` file.

Recognised keys (lower case, as written in the file)::

    issuer=https://idp.example.com
    client_id=...
    client_secret=...
    redirect_url=http://127.0.0.1:3030/callback
    scope=openid profile email
    discovery_url=https://idp.example.com/.well-known/openid-configuration
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import dotenv_values

from .callback_listener import DEFAULT_REDIRECT_URL

DEFAULT_ENV_FILE = ".env"
DEFAULT_SCOPE = "openid"

logger = logging.getLogger(__name__)


@dataclass
class ClientEnvDefaults:
    issuer: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    redirect_url: str = DEFAULT_REDIRECT_URL
    scope: str = DEFAULT_SCOPE
    discovery_url: str | None = None


def determine_env_file(argv: list[str]) -> str:
    env_file = DEFAULT_ENV_FILE
    for idx, arg in enumerate(argv):
        if arg in ("--env-file", "-e"):
            if idx + 1 < len(argv):
                env_file = argv[idx + 1]
        elif arg.startswith("--env-file="):
            env_file = arg.split("=", 1)[1]
        elif arg.startswith("-e="):
            env_file = arg.split("=", 1)[1]
    return env_file


def load_env_defaults(env_file: str) -> ClientEnvDefaults:
    path = Path(env_file)
    if not path.exists():
        return ClientEnvDefaults()
    values = dotenv_values(path)
    logger.debug("Loaded defaults from %s (%d keys)", path, len(values))
    defaults = ClientEnvDefaults(
        issuer=values.get("issuer") or None,
        client_id=values.get("client_id") or None,
        client_secret=values.get("client_secret") or None,
        discovery_url=values.get("discovery_url") or None,
    )
    if values.get("redirect_url"):
        defaults.redirect_url = values["redirect_url"]
    if values.get("scope"):
        defaults.scope = values["scope"]
    return defaults


def split_scopes(values: List[str] | str | None) -> List[str]:
    """Flatten repeated and space-separated scope values, keeping order.
    Duplicates are passed through to the provider unchanged."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    scopes: List[str] = []
    for value in values:
        scopes.extend(value.split())
    return scopes
