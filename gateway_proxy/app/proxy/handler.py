"""
Forwarding Handler
==================

Turns every inbound request into exactly one response:

1. ``/`` (any method): plain text banner, nothing forwarded
2. ``OPTIONS`` elsewhere: CORS preflight answer, nothing forwarded
3. anything else: forwarded to the API gateway and streamed back

Error Mapping:
--------------
- Outbound request cannot be built (bad method token, malformed URL): 400
- Gateway unreachable, transport failure or deadline exceeded: 503
- Failure while relaying the body: logged and re-raised; the status line
  is already on the wire so the server aborts the connection
"""

import asyncio
import logging
import re

import httpx
from fastapi import HTTPException, Request, status
from fastapi.responses import Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from ..config import Settings
from .headers import (
    CORS_HEADER_NAMES,
    REQUEST_ONLY_EXCLUDED,
    apply_cors_headers,
    filtered_copy,
)

logger = logging.getLogger(__name__)

# RFC 9110 token characters
_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

OUTBOUND_EXCLUDED = CORS_HEADER_NAMES | REQUEST_ONLY_EXCLUDED


class ForwardingHandler:
    """
    Forwards inbound requests to a single upstream origin.

    Holds no per-request state, so one instance serves all concurrent
    requests. The HTTP client is shared for connection reuse and is owned
    by whoever created it.

    Attributes:
        settings: Immutable proxy configuration
        client: Shared HTTP client used for every upstream call
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def __call__(self, request: Request) -> Response:
        logger.info(f"Received {request.method} request for {request.url.path}")

        if request.url.path == "/":
            return self.root_response()

        if request.method == "OPTIONS":
            return self.preflight_response()

        return await self.forward(request)

    # ========================================================================
    # Synthetic Responses
    # ========================================================================

    def root_response(self) -> Response:
        """Banner identifying the deployed service."""
        return Response(
            content=self.settings.ROOT_MESSAGE,
            status_code=status.HTTP_200_OK,
            headers={"Content-Type": "text/plain"},
        )

    def preflight_response(self) -> Response:
        """Empty 200 carrying the CORS header set."""
        response = Response(status_code=status.HTTP_200_OK)
        apply_cors_headers(response.headers)
        return response

    # ========================================================================
    # Forwarding
    # ========================================================================

    def build_upstream_url(self, request: Request) -> str:
        """
        Concatenate the gateway base URL with the inbound path.

        The raw query string is appended when FORWARD_QUERY_STRING is set.
        """
        url = self.settings.API_GATEWAY_URL + request.url.path
        query = request.url.query
        if self.settings.FORWARD_QUERY_STRING and query:
            url = f"{url}?{query}"
        return url

    def build_outbound_request(self, request: Request) -> httpx.Request:
        """
        Build the upstream request without reading the inbound body.

        Args:
            request: Inbound request

        Returns:
            httpx.Request ready to be sent with the shared client

        Raises:
            ValueError: If the method is not a valid HTTP token
            httpx.InvalidURL: If the resulting URL cannot be parsed
        """
        if not _METHOD_TOKEN.match(request.method):
            raise ValueError(f"Invalid HTTP method: {request.method!r}")

        headers = filtered_copy(request.headers.raw, OUTBOUND_EXCLUDED)

        # Requests without framing headers have no body to pass on
        content = None
        if "content-length" in request.headers or "transfer-encoding" in request.headers:
            content = request.stream()

        return self.client.build_request(
            request.method,
            self.build_upstream_url(request),
            headers=headers,
            content=content,
        )

    async def forward(self, request: Request) -> Response:
        """
        Send the request upstream and stream the answer back.

        The timeout covers connecting, sending the request and receiving the
        response headers. Relaying the body has no total bound; each read is
        bounded by the client's read timeout.

        Raises:
            HTTPException: 400 if the request cannot be built, 503 if the
                gateway cannot be reached in time
        """
        if not self.settings.API_GATEWAY_URL:
            logger.error("Error forwarding request to API Gateway: API_GATEWAY_URL is not set")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service unavailable",
            )

        try:
            outbound = self.build_outbound_request(request)
        except (ValueError, httpx.InvalidURL) as e:
            logger.error(f"Failed to build request for API Gateway: {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Bad request",
            )

        try:
            upstream = await asyncio.wait_for(
                self.client.send(outbound, stream=True),
                timeout=self.settings.UPSTREAM_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Error forwarding request to API Gateway: no response within "
                f"{self.settings.UPSTREAM_TIMEOUT_SECONDS}s",
                extra={"method": outbound.method, "url": str(outbound.url)},
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service unavailable",
            )
        except httpx.RequestError as e:
            logger.error(
                f"Error forwarding request to API Gateway: {e!r}",
                extra={"method": outbound.method, "url": str(outbound.url)},
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service unavailable",
            )

        body = UpstreamBody(upstream)
        try:
            response = UpstreamStreamingResponse(body, status_code=upstream.status_code)
            apply_cors_headers(response.headers)
            response.raw_headers.extend(filtered_copy(upstream.headers.raw, CORS_HEADER_NAMES))
        except Exception:
            await body.aclose()
            raise

        return response


class UpstreamBody:
    """
    Async iterator over the undecoded upstream body.

    Owns the upstream response: it is closed when the body is exhausted,
    when reading fails, when iteration is cancelled, or when ``aclose`` is
    called before or during iteration.
    """

    def __init__(self, upstream: httpx.Response):
        self.upstream = upstream
        self._chunks = upstream.aiter_raw()

    def __aiter__(self) -> "UpstreamBody":
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            logger.info(f"Response from API Gateway: {self.upstream.status_code}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Error relaying response body from API Gateway: {e!r}")
            await self.aclose()
            raise
        except asyncio.CancelledError:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        """Release the upstream response. Safe to call more than once."""
        if self.upstream.is_closed:
            return
        # Finish the close even if the awaiting task is being cancelled
        await asyncio.shield(self.upstream.aclose())


class UpstreamStreamingResponse(StreamingResponse):
    """StreamingResponse that releases the upstream body however sending ends."""

    body_iterator: UpstreamBody

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()
