"""Blocking HTTP transport used for discovery, token and userinfo calls."""
from __future__ import annotations

import http.client
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from .errors import TransportError

DEFAULT_TIMEOUT = 30
ALLOWED_SCHEMES = ("http", "https")

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status: int
    content_type: str
    payload: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.payload)


def encode_query(params: Dict[str, Any], safe: str = "") -> str:
    safe_params = {k: v for k, v in params.items() if v is not None}
    return urlparse.urlencode(safe_params, quote_via=urlparse.quote, safe=safe)


class UrllibTransport:
    """Default transport. Returns a response for every HTTP status; any failure
    to obtain one raises :class:`TransportError`. Only http and https URLs are
    fetched."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def get(self, url: str, headers: Dict[str, str] | None = None) -> HttpResponse:
        return self._execute(
            url, headers={"Accept": "application/json", **(headers or {})}
        )

    def post_form(self, url: str, data: Dict[str, Any]) -> HttpResponse:
        return self._execute(
            url,
            data=encode_query(data).encode("utf-8"),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            method="POST",
        )

    def _execute(
        self,
        url: str,
        headers: Dict[str, str],
        data: bytes | None = None,
        method: str = "GET",
    ) -> HttpResponse:
        scheme = urlparse.urlsplit(url).scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise TransportError(url, f"unsupported URL scheme {scheme or '(none)'!r}")
        logger.debug("%s %s", method, url)
        try:
            req = urlrequest.Request(url, data=data, headers=headers, method=method)
            with urlrequest.urlopen(req, timeout=self.timeout) as resp:
                payload = resp.read().decode("utf-8", errors="replace")
                return HttpResponse(
                    status=resp.status,
                    content_type=resp.headers.get("Content-Type", ""),
                    payload=payload,
                )
        except urlerror.HTTPError as exc:
            try:
                body = exc.read().decode("utf-8", errors="replace")
            except (http.client.HTTPException, OSError):
                body = ""
            return HttpResponse(
                status=exc.code,
                content_type=exc.headers.get("Content-Type", "") if exc.headers else "",
                payload=body,
            )
        except (urlerror.URLError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise TransportError(url, str(reason)) from exc
        except (http.client.HTTPException, ValueError) as exc:
            raise TransportError(url, f"{exc.__class__.__name__}: {exc}") from exc
