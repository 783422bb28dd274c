"""
Command-line entry point: run one OIDC authorization-code (or refresh-token)
flow against a provider and print what came back.
"""
from __future__ import annotations

import argparse
import logging
import sys
import textwrap
import webbrowser
from typing import Any

from rich.console import Console

from . import display
from .client import OidcClient
from .config import (
    ClientEnvDefaults,
    determine_env_file,
    load_env_defaults,
    split_scopes,
)
from .errors import OidcError
from .transport import DEFAULT_TIMEOUT, UrllibTransport

LOG_FORMAT = "%(asctime)s,p%(process)s,{%(filename)s:%(lineno)d},%(levelname)s,%(message)s"

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # werkzeug logs every callback request at INFO
    logging.getLogger("werkzeug").setLevel(logging.DEBUG if verbose else logging.WARNING)


def open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        logger.warning("Failed to open auth URL in browser: %s", exc)
        return
    if opened:
        logger.info("Opened auth URL in browser")
    else:
        logger.warning("No browser available; open the authorization URL manually.")


def run_flow(args: argparse.Namespace, console: Console | None = None, transport: Any = None) -> None:
    console = console or Console()
    transport = transport or UrllibTransport(timeout=args.timeout)

    client = OidcClient(
        args.issuer,
        args.client_id,
        args.client_secret,
        redirect_url=args.redirect_url,
        scope=args.scope,
        state=args.state,
        transport=transport,
        discovery_url=args.discovery_url,
    )
    display.print_parameters(client.config.summary(), title="Configuration", console=console)
    display.print_json_result(client.endpoints.as_dict(), title="Discovered endpoints", console=console)

    if args.refresh_token:
        tokens = client.refresh_token(args.refresh_token)
    else:
        auth_url = client.build_authorization_url()
        display.print_parameters(
            client.authorization_parameters(), title="Authorization request", console=console
        )
        console.print(f"\nAuthorization URL:\n{auth_url}\n", markup=False, highlight=False)
        if args.open_browser:
            open_browser(auth_url)
        logger.info("Waiting for the authorization callback on %s", args.redirect_url)
        callback = client.wait_for_code(
            timeout=args.callback_timeout, stop_on_error=args.stop_on_error
        )
        if args.strict_state:
            client.verify_state(callback.state)
        tokens = client.get_token(callback.code)

    display.print_json_result(tokens.as_dict(), title="Token response", console=console)
    if tokens.unverified_id_token is not None:
        header, payload = tokens.unverified_id_token
        display.print_json_result(header, title="ID token header (UNVERIFIED)", console=console)
        display.print_json_result(payload, title="ID token payload (UNVERIFIED)", console=console)

    if not args.skip_userinfo:
        user_info = client.get_user_info(tokens.access_token)
        display.print_json_result(user_info, title="User info", console=console)


def build_parser(defaults: ClientEnvDefaults, env_file: str) -> argparse.ArgumentParser:
    description = textwrap.dedent(
        """
        Exercise an OpenID Connect provider from the command line.

        Typical flow:
          1. Discover the provider endpoints from the issuer.
          2. Open the authorization URL in a browser and sign in.
          3. Capture the code on the local redirect URL and exchange it for tokens.
          4. Call the userinfo endpoint with the access token.

        Pass --refresh-token to skip the browser and exchange a refresh token instead.
        """
    ).strip()
    parser = argparse.ArgumentParser(
        prog="oidc-test-cli",
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-e",
        "--env-file",
        default=env_file,
        help="Path to the .env file containing client settings (default: %(default)s).",
    )
    parser.add_argument(
        "--issuer",
        default=defaults.issuer,
        required=defaults.issuer is None,
        help="Issuer URL of the OIDC provider (default: read from the env file).",
    )
    parser.add_argument(
        "--client-id",
        default=defaults.client_id,
        required=defaults.client_id is None,
        help="Application client ID (default: read from the env file).",
    )
    parser.add_argument(
        "--client-secret",
        default=defaults.client_secret,
        required=defaults.client_secret is None,
        help="Application client secret (default: read from the env file).",
    )
    parser.add_argument(
        "--redirect-url",
        default=defaults.redirect_url,
        help="Registered redirect URL; the callback listener binds to it (default: %(default)s).",
    )
    parser.add_argument(
        "--scope",
        action="append",
        default=None,
        help=(
            "Scope to request. Repeat the flag or pass a space-separated list; "
            "values are sent as given, duplicates included "
            f"(default: {defaults.scope})."
        ),
    )
    parser.add_argument(
        "--state",
        help="Fixed CSRF state value. If omitted, a random 32-character value is generated.",
    )
    parser.add_argument(
        "--refresh-token",
        help="Exchange this refresh token instead of running the authorization-code flow.",
    )
    parser.add_argument(
        "--discovery-url",
        default=defaults.discovery_url,
        help="Full OIDC discovery URL. Defaults to {issuer}/.well-known/openid-configuration.",
    )
    parser.add_argument(
        "--timeout",
        default=DEFAULT_TIMEOUT,
        type=int,
        help="HTTP timeout in seconds (default: %(default)s).",
    )
    parser.add_argument(
        "--callback-timeout",
        type=float,
        default=None,
        help="Give up waiting for the browser redirect after this many seconds (default: wait forever).",
    )
    parser.add_argument(
        "--no-browser",
        dest="open_browser",
        action="store_false",
        help="Print the authorization URL without opening a browser.",
    )
    parser.add_argument(
        "--skip-userinfo",
        action="store_true",
        help="Do not call the userinfo endpoint after obtaining tokens.",
    )
    parser.add_argument(
        "--strict-state",
        action="store_true",
        help="Reject the callback when its state does not match the one that was sent.",
    )
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help=(
            "Stop waiting when the provider redirects back with an OAuth error "
            "(default: show the error and keep waiting for a code)."
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.set_defaults(func=run_flow)
    return parser


def main(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[1:]
    env_file = determine_env_file(argv)
    defaults = load_env_defaults(env_file)
    parser = build_parser(defaults, env_file)
    args = parser.parse_args(argv)
    args.scope = split_scopes(args.scope) or split_scopes(defaults.scope)
    configure_logging(args.verbose)
    try:
        args.func(args)
    except OidcError as exc:
        parser.exit(status=1, message=f"{exc}\n")
    except KeyboardInterrupt:
        parser.exit(status=130, message="Interrupted.\n")


if __name__ == "__main__":
    main()
