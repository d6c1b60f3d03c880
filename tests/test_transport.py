import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from ofproviders.gofeatureflag.transport import (
    HTTPRequest,
    UrllibHTTPClient,
    join_url,
)


class _Handler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        status = 401 if self.path.endswith("/unauthorized") else 200
        payload = json.dumps(
            {
                "path": self.path,
                "body": body.decode(),
                "auth": self.headers.get("Authorization"),
                "ctype": self.headers.get("Content-Type"),
            }
        ).encode()
        self.send_response(status)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, *args):
        pass


@pytest.fixture
def server():
    httpd = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()


def test_join_url_builds_eval_path():
    url = join_url("https://gofeatureflag.org/", "v1", "/", "feature", "flag", "eval")
    assert url == "https://gofeatureflag.org/v1/feature/flag/eval"


def test_join_url_without_path_and_with_prefix():
    assert join_url("https://gofeatureflag.org", "v1") == join_url("https://gofeatureflag.org/", "v1")
    assert join_url("http://localhost:1031/proxy//", "v1", "data") == "http://localhost:1031/proxy/v1/data"


def test_join_url_keeps_query():
    url = join_url("http://localhost:1031/?a=b", "v1")
    assert url.endswith("/v1?a=b")


def test_client_posts_body_and_headers(server):
    client = UrllibHTTPClient(timeout=5)
    response = client.do(
        HTTPRequest(
            method="POST",
            url=join_url(server, "v1", "feature", "flag", "eval"),
            headers={"Content-Type": "application/json", "Authorization": "Bearer token"},
            body=b'{"x": 1}',
        )
    )
    assert response.status_code == 200
    echoed = json.loads(response.body)
    assert echoed["path"] == "/v1/feature/flag/eval"
    assert echoed["body"] == '{"x": 1}'
    assert echoed["auth"] == "Bearer token"
    assert echoed["ctype"] == "application/json"


def test_client_returns_error_status(server):
    response = UrllibHTTPClient().do(
        HTTPRequest(method="POST", url=join_url(server, "v1", "feature", "unauthorized"), body=b"{}")
    )
    assert response.status_code == 401
    assert json.loads(response.body)["path"] == "/v1/feature/unauthorized"


def test_client_raises_when_unreachable():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    with pytest.raises(OSError):
        UrllibHTTPClient(timeout=2).do(HTTPRequest(method="POST", url=f"http://127.0.0.1:{port}/", body=b"{}"))