import json
import logging
import socket
from dataclasses import dataclass

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from webflow import (
    ClientRequest,
    EncodeError,
    FileUpload,
    MemoryFileOpener,
    MissingTokenError,
    OSFileOpener,
    Param,
    RateLimitHeaderError,
    TimeoutError,
    TransportError,
    APIError,
    Webflow,
    new_client,
)
from webflow import client as client_mod

RATE_HEADERS = {"x-ratelimit-limit": "60", "x-ratelimit-remaining": "42"}


@dataclass
class Site:
    id: str


class _StubResponse:
    def __init__(self, payload=None, status=200, headers=None, raw=None):
        self.status_code = status
        self.headers = CaseInsensitiveDict(RATE_HEADERS if headers is None else headers)
        self.content = raw if raw is not None else json.dumps(payload).encode()


class _StubSession:
    def __init__(self, response=None, exc=None):
        self._response = response
        self._exc = exc
        self.calls = []

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "data": data, "headers": headers, "timeout": timeout})
        if self._exc is not None:
            raise self._exc
        return self._response


def _client(session, **kw):
    return Webflow("secret-token", transport=session, **kw)


def test_empty_token_fails():
    with pytest.raises(MissingTokenError) as exc:
        new_client("")
    assert exc.value.code == -1
    with pytest.raises(MissingTokenError):
        Webflow()


def test_defaults():
    client = new_client("secret-token")
    assert client.access_token == "secret-token"
    assert client.host == "https://api.webflow.com"
    assert client.version == "1.0.0"
    assert client.timeout == 5.0
    assert client.debug is False
    assert isinstance(client.fs, OSFileOpener)
    assert isinstance(client.transport, requests.Session)
    assert client.rate_limit == 0 and client.remaining == 0

    adapter = client.transport.get_adapter("https://api.webflow.com/sites")
    assert isinstance(adapter, client_mod.KeepAliveAdapter)
    assert adapter._pool_connections == 5
    assert adapter._pool_maxsize == 5
    socket_options = adapter.poolmanager.connection_pool_kw["socket_options"]
    assert (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1) in socket_options
    client.close()


def test_overrides_and_unknown_setting():
    client = Webflow("t", host="http://localhost:8080", version="2.0.0", timeout=1.5)
    assert (client.host, client.version, client.timeout) == ("http://localhost:8080", "2.0.0", 1.5)
    with pytest.raises(AttributeError):
        Webflow("t", colour="blue")


def test_request_headers_url_and_result():
    session = _StubSession(_StubResponse({"data": {"id": "abc"}}))
    client = _client(session)
    site = client.request(ClientRequest("GET", "/sites/abc"), into=Site)

    assert site == Site(id="abc")
    assert client.rate_limit == 60
    assert client.remaining == 42

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.webflow.com/sites/abc"
    assert call["timeout"] == 5.0
    assert call["data"] == b"null"
    assert call["headers"] == {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "Accept-Charset": "utf-8",
        "Accept-Version": "1.0.0",
        "Authorization": "Bearer secret-token",
    }


def test_mutated_fields_are_used():
    session = _StubSession(_StubResponse({"data": {}}))
    client = _client(session)
    client.host = "https://example.test"
    client.version = "9.9.9"
    client.access_token = "rotated"
    client.timeout = 2.0
    client.connect_timeout = 1.0
    client.request(ClientRequest("DELETE", "/x"))
    call = session.calls[0]
    assert call["url"] == "https://example.test/x"
    assert call["headers"]["Accept-Version"] == "9.9.9"
    assert call["headers"]["Authorization"] == "Bearer rotated"
    assert call["timeout"] == (1.0, 2.0)


def test_page_params_appended():
    session = _StubSession(_StubResponse({"data": []}))
    client = _client(session)
    client.request(ClientRequest("GET", "/collections/c1/items", params=Param(page=2, per_page=50)))
    assert session.calls[0]["url"] == "https://api.webflow.com/collections/c1/items?page=2&per_page=50"


def test_send_does_not_touch_client_state():
    session = _StubSession(_StubResponse({"data": {"id": "abc"}}))
    client = _client(session)
    result = client.send(ClientRequest("GET", "/sites/abc"), into=Site)
    assert result.data == Site("abc")
    assert result.rate_limit.remaining == 42
    assert client.remaining == 0


def test_json_body_sent():
    session = _StubSession(_StubResponse({"data": {"id": "i1"}}))
    client = _client(session)
    client.request(ClientRequest("POST", "/collections/c1/items", {"fields": {"name": "x"}}))
    assert json.loads(session.calls[0]["data"]) == {"fields": {"name": "x"}}


def test_remote_error():
    response = _StubResponse({"errors": [{"message": "Not Found", "code": 404}]}, status=404)
    client = _client(_StubSession(response))
    with pytest.raises(APIError) as exc:
        client.request(ClientRequest("GET", "/sites/nope"), into=Site)
    assert str(exc.value) == "Webflow: Not Found (404)"
    # rate limits are parsed before the error is raised but only recorded on success
    assert client.remaining == 0


def test_missing_rate_limit_headers_fail_clean_body():
    client = _client(_StubSession(_StubResponse({"data": {"id": "abc"}}, headers={})))
    with pytest.raises(RateLimitHeaderError) as exc:
        client.request(ClientRequest("GET", "/sites/abc"), into=Site)
    assert exc.value.code == -1


def test_non_numeric_rate_limit_header():
    headers = {"x-ratelimit-limit": "60", "x-ratelimit-remaining": "lots"}
    client = _client(_StubSession(_StubResponse({"data": {"id": "abc"}}, headers=headers)))
    with pytest.raises(RateLimitHeaderError, match="x-ratelimit-remaining"):
        client.request(ClientRequest("GET", "/sites/abc"), into=Site)


def test_connection_failures_are_client_side():
    client = _client(_StubSession(exc=requests.ConnectionError("dns failure")))
    with pytest.raises(TransportError) as exc:
        client.request(ClientRequest("GET", "/sites"))
    assert exc.value.code == -1
    assert "Failed to make request: dns failure" in exc.value.message

    client = _client(_StubSession(exc=requests.ReadTimeout("slow")))
    with pytest.raises(TimeoutError):
        client.request(ClientRequest("GET", "/sites"))


def test_response_read_failure():
    class _BrokenResponse:
        status_code = 200
        headers = CaseInsensitiveDict(RATE_HEADERS)

        @property
        def content(self):
            raise requests.exceptions.ChunkedEncodingError("connection reset")

    client = _client(_StubSession(_BrokenResponse()))
    with pytest.raises(TransportError, match="Could not read response"):
        client.request(ClientRequest("GET", "/sites"))


def test_missing_upload_file_sends_nothing():
    session = _StubSession(_StubResponse({"data": {}}))
    client = _client(session, fs=MemoryFileOpener())
    request = ClientRequest("POST", "/sites/s1/assets", {}, file=FileUpload(field="file", path="logo.png"))
    with pytest.raises(EncodeError) as exc:
        client.request(request)
    assert exc.value.code == -1
    assert session.calls == []


def test_upload_uses_multipart_content_type():
    session = _StubSession(_StubResponse({"data": {"id": "asset"}}))
    client = _client(session, fs=MemoryFileOpener({"logo.png": b"png"}))
    request = ClientRequest("POST", "/sites/s1/assets", {"alt": "x"}, file=FileUpload(field="file", path="logo.png"))
    client.request(request)
    call = session.calls[0]
    assert call["headers"]["Content-Type"].startswith("multipart/form-data; boundary=")
    assert b"png" in call["data"]


def test_upload_from_disk(tmp_path):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"hello from disk")
    session = _StubSession(_StubResponse({"data": {}}))
    client = _client(session)
    client.request(ClientRequest("POST", "/assets", None, file=FileUpload(field="file", path=str(path))))
    assert b"hello from disk" in session.calls[0]["data"]
    assert b'filename="doc.txt"' in session.calls[0]["data"]


def test_debug_logging_hides_token(caplog):
    client = _client(_StubSession(_StubResponse({"data": {"id": "abc"}})), debug=True)
    with caplog.at_level(logging.DEBUG, logger="webflow.client"):
        client.request(ClientRequest("GET", "/sites/abc"))
    assert "GET https://api.webflow.com/sites/abc" in caplog.text
    assert "42/60" in caplog.text
    assert "secret-token" not in caplog.text


def test_no_logging_without_debug(caplog):
    client = _client(_StubSession(_StubResponse({"data": {}})))
    with caplog.at_level(logging.DEBUG, logger="webflow.client"):
        client.request(ClientRequest("GET", "/sites"))
    assert caplog.records == []


def test_context_manager_closes_transport():
    class _ClosingSession(_StubSession):
        closed = False

        def close(self):
            self.closed = True

    session = _ClosingSession()
    with _client(session):
        pass
    assert session.closed
