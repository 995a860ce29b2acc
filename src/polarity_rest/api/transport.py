"""HTTP transport used by the Polarity client.

The client only needs one capability from the network layer: send a
request and get back a status code and a decoded body. ``Transport`` is
that capability; ``HttpxTransport`` provides it on top of
``httpx.AsyncClient``, which also keeps the session cookie issued by
``POST /v1/authenticate``.

Network failures surface as ``TransportError``. Non-2xx responses are NOT
errors at this layer; the client decides which status codes are acceptable
for each endpoint.
"""

import ssl
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ..config import RequestOptions
from ..utils.exceptions import TransportError


@dataclass
class RequestSpec:
    """A single request relative to the server host."""

    method: str
    path: str
    params: dict[str, Any] | None = None
    json: Any = None


@dataclass
class TransportResponse:
    """Status code and decoded body (JSON when possible, text otherwise)."""

    status_code: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class Transport(Protocol):
    """Capability for sending requests to a Polarity server."""

    async def send(self, spec: RequestSpec) -> TransportResponse: ...

    async def aclose(self) -> None: ...


def build_ssl_context(options: RequestOptions) -> ssl.SSLContext | bool:
    """
    Translate request options into an httpx ``verify`` argument.

    Returns False when verification is disabled and no client certificate
    is configured, otherwise an SSLContext carrying the CA bundle and
    client certificate.
    """
    if not options.tls_verify and not options.client_cert:
        return False

    ctx = ssl.create_default_context(
        cafile=str(options.ca_bundle) if options.ca_bundle else None
    )
    if not options.tls_verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE

    if options.client_cert:
        ctx.load_cert_chain(
            certfile=str(options.client_cert),
            keyfile=str(options.client_key) if options.client_key else None,
            password=options.key_passphrase,
        )
    return ctx


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxTransport:
    """
    ``Transport`` implementation backed by ``httpx.AsyncClient``.

    The underlying client is created lazily so options can be inspected or
    replaced before the first request.
    """

    def __init__(self, host: str, options: RequestOptions | None = None) -> None:
        self.host = host.rstrip("/")
        self.options = options or RequestOptions()
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.host,
                verify=build_ssl_context(self.options),
                proxy=self.options.proxy_url,
                timeout=self.options.timeout,
                headers={"Accept": "application/vnd.api+json"},
            )
        return self._client

    async def send(self, spec: RequestSpec) -> TransportResponse:
        try:
            response = await self.client.request(
                spec.method,
                spec.path,
                params=spec.params,
                json=spec.json,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP Request Error: {e}", cause=e) from e

        return TransportResponse(
            status_code=response.status_code,
            body=_decode_body(response),
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
