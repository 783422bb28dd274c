import threading

import pytest
from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from oidc_test_cli.errors import TransportError
from oidc_test_cli.transport import UrllibTransport, encode_query


@pytest.fixture
def provider():
    app = Flask(__name__)

    @app.post("/token")
    def token():
        return jsonify(form=request.form.to_dict(), content_type=request.content_type)

    @app.get("/userinfo")
    def userinfo():
        return jsonify(authorization=request.headers.get("Authorization"))

    @app.get("/broken")
    def broken():
        return "nope", 503

    @app.get("/latin1")
    def latin1():
        return b'{"name": "\xff"}', 200, {"Content-Type": "application/json"}

    server = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}"
    finally:
        server.shutdown()
        thread.join()
        server.server_close()


def test_post_form_is_url_encoded(provider):
    response = UrllibTransport(timeout=5).post_form(
        f"{provider}/token", {"grant_type": "authorization_code", "code": "a b&c", "skip": None}
    )
    assert response.ok
    body = response.json()
    assert body["form"] == {"grant_type": "authorization_code", "code": "a b&c"}
    assert body["content_type"] == "application/x-www-form-urlencoded"


def test_get_passes_headers(provider):
    response = UrllibTransport(timeout=5).get(
        f"{provider}/userinfo", {"Authorization": "Bearer t0k"}
    )
    assert response.json() == {"authorization": "Bearer t0k"}
    assert "application/json" in response.content_type


def test_error_status_is_returned_not_raised(provider):
    response = UrllibTransport(timeout=5).get(f"{provider}/broken")
    assert response.status == 503
    assert not response.ok
    assert response.payload == "nope"


def test_connection_failure_raises_transport_error():
    with pytest.raises(TransportError):
        UrllibTransport(timeout=2).get("http://127.0.0.1:1/unreachable")


def test_encode_query_keeps_safe_characters():
    assert encode_query({"redirect_uri": "http://h:1/cb", "scope": "a b"}, safe=":/") == (
        "redirect_uri=http://h:1/cb&scope=a%20b"
    )


def test_undecodable_body_is_replaced_not_raised(provider):
    response = UrllibTransport(timeout=5).get(f"{provider}/latin1")
    assert response.ok
    assert response.json() == {"name": "\ufffd"}


@pytest.mark.parametrize(
    "url", ["idp.example.com/.well-known/openid-configuration", "file:///etc/passwd", "ftp://h/x"]
)
def test_non_http_url_raises_transport_error(url):
    with pytest.raises(TransportError, match="unsupported URL scheme"):
        UrllibTransport(timeout=2).get(url)


def test_non_http_url_is_rejected_for_posts():
    with pytest.raises(TransportError):
        UrllibTransport(timeout=2).post_form("file:///tmp/token", {"code": "c"})
