"""
Local listener for the authorization redirect.

A Flask app bound to the redirect URL's host and port is served by werkzeug on
a background thread. The first request that carries ``code`` is handed to the
waiting caller through a :class:`OneShot` channel, and a second channel tells
the accept loop to stop. Requests without a code, OAuth ``error`` redirects
included, get an informational page and the server keeps waiting, unless the
listener was created with ``stop_on_error=True``. Later requests only get an
acknowledgement page.
"""
from __future__ import annotations

import logging
import textwrap
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib import parse as urlparse

from flask import Flask, request
from markupsafe import escape
from werkzeug.serving import make_server

from .errors import (
    AuthorizationDeniedError,
    CallbackBindError,
    CallbackListenerError,
    CallbackTimeoutError,
    NoCodeReceivedError,
)
from .rendezvous import ChannelClosed, OneShot

DEFAULT_REDIRECT_URL = "http://127.0.0.1:3030/callback"

CODE_RECEIVED_MESSAGE = "Authorization code received. You can close this window."
ALREADY_COMPLETED_MESSAGE = (
    "This authorization request was already completed. You can close this window."
)
NO_CODE_MESSAGE = "No authorization code found in the query."
CALLBACK_PAGE_HTML = textwrap.dedent(
    """
    <!doctype html>
    <html lang="en">
    <head>
      <meta charset="utf-8" />
      <title>OIDC Test CLI</title>
      <style>
        body {{ font-family: sans-serif; margin: 2rem; background: #f7f7f7; }}
        section {{ background: white; border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }}
      </style>
    </head>
    <body>
      <section><p id="message">{message}</p></section>
    </body>
    </html>
    """
).strip()

logger = logging.getLogger(__name__)


@dataclass
class CallbackResult:
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


def _page(message: str) -> str:
    return CALLBACK_PAGE_HTML.format(message=escape(message))


def _bind_address(redirect_url: str) -> tuple[str, int, str]:
    parsed = urlparse.urlparse(redirect_url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise CallbackListenerError(f"Unsupported redirect URL: {redirect_url}")
    if parsed.scheme == "https":
        logger.warning(
            "Redirect URL %s uses https; the callback listener only serves plain HTTP.",
            redirect_url,
        )
    port = parsed.port
    if port is None:
        port = 443 if parsed.scheme == "https" else 80
    return parsed.hostname, port, parsed.path or "/"


class CallbackListener:
    """Capture exactly one authorization redirect on ``redirect_url``."""

    def __init__(
        self,
        redirect_url: str = DEFAULT_REDIRECT_URL,
        server_factory: Callable[..., Any] = make_server,
        stop_on_error: bool = False,
    ):
        self.redirect_url = redirect_url
        self.stop_on_error = stop_on_error
        self.host, self._requested_port, self.path = _bind_address(redirect_url)
        self._server_factory = server_factory
        self._codes: OneShot[CallbackResult] = OneShot()
        self._shutdown: OneShot[None] = OneShot()
        self._server: Any = None
        self._threads: list[threading.Thread] = []
        self.app = self._build_app()

    def _build_app(self) -> Flask:
        app = Flask(__name__)

        @app.get(self.path)
        def callback() -> Any:
            return self._handle(request.args)

        return app

    def _handle(self, args: Any) -> Any:
        if self._codes.consumed:
            return _page(ALREADY_COMPLETED_MESSAGE), 200

        code = args.get("code")
        error = args.get("error")
        if code:
            result = CallbackResult(code=code, state=args.get("state"))
            reply = CODE_RECEIVED_MESSAGE
        elif error and self.stop_on_error:
            result = CallbackResult(
                state=args.get("state"),
                error=error,
                error_description=args.get("error_description"),
            )
            reply = f"Authorization failed: {error}. You can close this window."
        elif error:
            logger.warning(
                "Authorization server returned error: %s; still waiting for a code.", error
            )
            return _page(f"{NO_CODE_MESSAGE} Authorization server returned error: {error}."), 200
        else:
            logger.info("Callback request without an authorization code; still waiting.")
            return _page(NO_CODE_MESSAGE), 200

        # code first, then the shutdown signal
        if not self._codes.send(result):
            return _page(ALREADY_COMPLETED_MESSAGE), 200
        self._shutdown.send(None)
        if code:
            logger.info("Authorization code received.")
        else:
            logger.warning("Authorization server returned error: %s", error)
        return _page(reply), 200

    @property
    def port(self) -> int:
        if self._server is None:
            return self._requested_port
        return self._server.server_port

    def start(self) -> None:
        if self._server is not None:
            raise CallbackListenerError("Callback listener already started")
        try:
            self._server = self._server_factory(
                self.host, self._requested_port, self.app, threaded=True
            )
        # werkzeug prints the bind error and calls sys.exit(1)
        except (OSError, SystemExit) as exc:
            raise CallbackBindError(
                f"Could not bind callback listener to {self.host}:{self._requested_port}"
            ) from exc

        serve = threading.Thread(
            target=self._serve, name="oidc-callback-server", daemon=True
        )
        watch = threading.Thread(
            target=self._await_shutdown, name="oidc-callback-shutdown", daemon=True
        )
        self._threads = [serve, watch]
        serve.start()
        watch.start()
        logger.info("Callback listener started at http://%s:%s%s", self.host, self.port, self.path)

    def _serve(self) -> None:
        try:
            self._server.serve_forever()
        finally:
            # both are no-ops once a result was delivered
            self._codes.close()
            self._shutdown.close()

    def _await_shutdown(self) -> None:
        try:
            self._shutdown.receive()
        except ChannelClosed:
            return
        self._server.shutdown()

    def wait(self, timeout: Optional[float] = None) -> CallbackResult:
        """
        Block until the callback arrives. ``timeout=None`` waits forever.

        Raises:
            NoCodeReceivedError: the server stopped without a delivery.
            CallbackTimeoutError: nothing arrived within ``timeout`` seconds.
            AuthorizationDeniedError: ``stop_on_error`` is set and the provider
                redirected back with an error.
            CallbackListenerError: not started, or already stopped.
        """
        if self._server is None:
            raise CallbackListenerError("Callback listener was not started")
        if not self._threads:
            raise CallbackListenerError("Callback listener already stopped")
        try:
            result = self._codes.receive(timeout=timeout)
        except TimeoutError as exc:
            raise CallbackTimeoutError(
                f"No authorization callback received within {timeout} seconds."
            ) from exc
        except ChannelClosed as exc:
            raise NoCodeReceivedError(
                "Server closed without receiving an authorization code."
            ) from exc
        finally:
            self._stop()

        if result.error:
            raise AuthorizationDeniedError(result.error, result.error_description)
        logger.info("Server closed. Authorization code captured.")
        return result

    def listen(self, timeout: Optional[float] = None) -> CallbackResult:
        self.start()
        return self.wait(timeout=timeout)

    def _stop(self) -> None:
        self._shutdown.send(None)
        for thread in self._threads:
            thread.join()
        self._threads = []
        self._server.server_close()
