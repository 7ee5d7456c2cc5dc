"""HTTP clients for the Webflow API.

`Webflow` sends requests through a `requests.Session`; `AsyncWebflow` does
the same over `httpx.AsyncClient`. Both run the same pipeline for a
`ClientRequest`:

- encode the payload (JSON, or multipart when a file is attached)
- send it with the bearer token and `Accept-Version` headers
- decode the response envelope into the requested type

`send()` returns an `APIResult` carrying the rate limits observed for that
call. `request()` also records them on the client as `rate_limit` /
`remaining`; those two attributes are last-writer-wins when one client is
shared between threads or tasks, so concurrent callers should use `send()`.
"""

from __future__ import annotations

import logging
import socket
from typing import Any, Dict, List, Optional, Tuple

import httpx
import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection

from .config import Settings, settings
from .encoding import encode
from .envelope import APIResult, decode
from .errors import MissingTokenError, TimeoutError, TransportError
from .files import FileOpener, OSFileOpener
from .request import ClientRequest

logger = logging.getLogger(__name__)


def _keepalive_socket_options(keep_alive: float) -> List[Tuple[int, int, int]]:
    options = list(HTTPConnection.default_socket_options)
    options.append((socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1))
    interval = max(1, int(keep_alive))
    if hasattr(socket, "TCP_KEEPIDLE"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, interval))
    if hasattr(socket, "TCP_KEEPINTVL"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, interval))
    return options


class KeepAliveAdapter(HTTPAdapter):
    """HTTPAdapter whose pooled sockets send TCP keep-alive probes."""

    def __init__(self, keep_alive: float, **kwargs: Any) -> None:
        self.keep_alive = keep_alive
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["socket_options"] = _keepalive_socket_options(self.keep_alive)
        super().init_poolmanager(*args, **kwargs)


def build_transport(s: Settings) -> requests.Session:
    """Session with a small connection pool shared by every request of a client."""
    session = requests.Session()
    adapter = KeepAliveAdapter(s.keep_alive, pool_connections=s.pool_connections, pool_maxsize=s.pool_maxsize)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def build_async_transport(s: Settings) -> httpx.AsyncClient:
    limits = httpx.Limits(
        max_keepalive_connections=s.pool_maxsize,
        keepalive_expiry=s.keep_alive,
    )
    return httpx.AsyncClient(limits=limits)


class Webflow:
    def __init__(
        self,
        token: Optional[str] = None,
        *,
        fs: Optional[FileOpener] = None,
        transport: Any = None,
        **overrides: Any,
    ) -> None:
        s = settings()
        for k, v in overrides.items():
            if not hasattr(s, k):
                raise AttributeError(f"Unknown setting: {k}")
            setattr(s, k, v)
        if token is None:
            token = s.access_token
        if not token:
            raise MissingTokenError("missing webflow authentication token")

        self.access_token: str = token
        self.host: str = s.host
        self.version: str = s.version
        self.timeout: float = s.timeout
        self.connect_timeout: Optional[float] = s.connect_timeout
        self.debug: bool = s.debug
        self.transport = transport if transport is not None else self._default_transport(s)
        self.fs: FileOpener = fs if fs is not None else OSFileOpener()
        self.rate_limit: int = 0
        self.remaining: int = 0

    def _default_transport(self, s: Settings) -> Any:
        return build_transport(s)

    def headers(self, content_type: str) -> Dict[str, str]:
        return {
            "Content-Type": content_type,
            "Accept": "application/json",
            "Accept-Charset": "utf-8",
            "Accept-Version": self.version,
            "Authorization": f"Bearer {self.access_token}",
        }

    def _request_timeout(self) -> Any:
        if self.connect_timeout is None:
            return self.timeout
        return (self.connect_timeout, self.timeout)

    def _prepare(self, request: ClientRequest) -> Tuple[str, bytes, Dict[str, str]]:
        body, content_type = encode(request, self.fs)
        url = request.url(self.host)
        if self.debug:
            logger.debug("webflow request %s %s (%s, %d bytes)", request.method, url, content_type, len(body))
        return url, body, self.headers(content_type)

    def _finish(self, request: ClientRequest, status_code: int, headers: Any, body: bytes, into: Any) -> APIResult:
        if self.debug:
            logger.debug("webflow response %s %s -> %d", request.method, request.path, status_code)
        result = decode(status_code, headers, body, into)
        if self.debug:
            logger.debug(
                "webflow rate limit %d/%d remaining", result.rate_limit.remaining, result.rate_limit.limit
            )
        return result

    def _record(self, result: APIResult) -> Any:
        self.rate_limit = result.rate_limit.limit
        self.remaining = result.rate_limit.remaining
        return result.data

    def send(self, request: ClientRequest, into: Any = None) -> APIResult:
        """Execute `request` and return the decoded value with its rate limits.

        Raises a `WebflowError` subclass on any failure; nothing is retried.
        """
        url, body, headers = self._prepare(request)
        try:
            resp = self.transport.request(
                request.method, url, data=body, headers=headers, timeout=self._request_timeout()
            )
        except requests.Timeout as e:
            raise TimeoutError(f"Failed to make request: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"Failed to make request: {e}") from e
        try:
            content = resp.content
        except requests.RequestException as e:
            raise TransportError(f"Could not read response: {e}") from e
        return self._finish(request, resp.status_code, resp.headers, content, into)

    def request(self, request: ClientRequest, into: Any = None) -> Any:
        """Execute `request`, record its rate limits on the client and return the decoded value."""
        return self._record(self.send(request, into))

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "Webflow":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(host={self.host!r}, version={self.version!r}, timeout={self.timeout!r})"


class AsyncWebflow(Webflow):
    """Asynchronous variant using httpx.AsyncClient."""

    def _default_transport(self, s: Settings) -> Any:
        return build_async_transport(s)

    def _request_timeout(self) -> Any:
        return httpx.Timeout(self.timeout, connect=self.connect_timeout or self.timeout)

    async def send(self, request: ClientRequest, into: Any = None) -> APIResult:
        url, body, headers = self._prepare(request)
        try:
            resp = await self.transport.request(
                request.method, url, content=body, headers=headers, timeout=self._request_timeout()
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Failed to make request: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"Failed to make request: {e}") from e
        try:
            content = await resp.aread()
        except httpx.HTTPError as e:
            raise TransportError(f"Could not read response: {e}") from e
        return self._finish(request, resp.status_code, resp.headers, content, into)

    async def request(self, request: ClientRequest, into: Any = None) -> Any:
        return self._record(await self.send(request, into))

    async def aclose(self) -> None:
        aclose = getattr(self.transport, "aclose", None)
        if callable(aclose):
            await aclose()

    def __enter__(self) -> "AsyncWebflow":
        raise TypeError("AsyncWebflow must be used with 'async with'")

    def __exit__(self, exc_type, exc, tb) -> None:
        pass

    async def __aenter__(self) -> "AsyncWebflow":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def new_client(token: Optional[str], **kwargs: Any) -> Webflow:
    """Return a new Webflow client; raises MissingTokenError for an empty token."""
    return Webflow(token, **kwargs)
