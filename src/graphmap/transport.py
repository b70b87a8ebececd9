from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential, wait_random

from .errors import DecodeError, RequestError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """The single primitive the mapping layer needs from the network.

    `path` is relative to the store's REST root. Implementations return the
    parsed JSON body (None for an empty body) and raise RequestError for
    transport failures and non-2xx responses.
    """

    async def request(self, method: str, path: str, body: Any = None) -> Any: ...

    async def aclose(self) -> None: ...


def default_timeout(connect: float = 10.0, read: float = 60.0) -> httpx.Timeout:
    return httpx.Timeout(connect=connect, read=read, write=20.0, pool=10.0)


def default_limits() -> httpx.Limits:
    return httpx.Limits(max_connections=100, max_keepalive_connections=20)


class HttpClientFactory:
    """Creates httpx clients for a store's REST root.

    Keep one client per GraphClient; do not create per-request.
    """

    @staticmethod
    def client(
        base_url: str,
        *,
        auth: httpx.Auth | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            auth=auth,
            timeout=timeout or default_timeout(),
            limits=default_limits(),
            transport=transport,
            follow_redirects=True,
        )


# Only failures where the request never reached the store are safe to resend.
ConnectionFailure = (httpx.ConnectError, httpx.ConnectTimeout)


def connect_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.2, max=5.0) + wait_random(0, 0.2),
        retry=retry_if_exception_type(ConnectionFailure),
    )


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise DecodeError(f"store returned a non-JSON body for {response.request.url}") from e


class HttpTransport:
    """Transport over a shared httpx.AsyncClient."""

    def __init__(
        self,
        root: str,
        *,
        username: str | None = None,
        password: str | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 60.0,
        connect_retries: int = 3,
        client: httpx.AsyncClient | None = None,
    ):
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = client or HttpClientFactory.client(
            root, auth=auth, timeout=default_timeout(connect_timeout, read_timeout)
        )
        self._connect_retries = connect_retries

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, body: Any) -> httpx.Response:
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        return await self._client.request(method, path.lstrip("/"), **kwargs)

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        logger.debug("%s /%s", method, path.lstrip("/"))
        send = connect_retry(self._connect_retries)(self._send)
        try:
            response = await send(method, path, body)
        except httpx.HTTPError as e:
            logger.warning("%s /%s failed: %s", method, path.lstrip("/"), e)
            raise RequestError(f"{method} /{path.lstrip('/')} failed: {e}") from e

        if response.is_error:
            try:
                payload = _decode(response)
            except DecodeError:
                payload = response.text
            logger.debug("%s /%s -> %s", method, path.lstrip("/"), response.status_code)
            raise RequestError(
                f"{method} /{path.lstrip('/')} returned {response.status_code}",
                status=response.status_code,
                body=payload,
            )
        return _decode(response)
