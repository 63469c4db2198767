"""
Sends logical requests over httpx and retries 503 responses with full-jitter
backoff. Network failures are not retried; they propagate to the caller.
"""

import time
from typing import Optional

import httpx
import structlog

from .backoff import BackoffPolicy
from .config import TransportSettings
from .request import HttpRequest
from .response import HttpResponse

logger = structlog.get_logger(__name__)

SERVICE_UNAVAILABLE = 503


class RequestExecutor:
    def __init__(
        self,
        settings: Optional[TransportSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        """Initialize the executor; an httpx client is created when none is given."""
        self.settings = settings or TransportSettings()
        self.backoff = backoff or BackoffPolicy(
            base_delay=self.settings.backoff_base,
            max_delay=self.settings.backoff_cap,
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.timeout),
            follow_redirects=False,
            limits=httpx.Limits(
                max_connections=self.settings.max_connections,
                max_keepalive_connections=self.settings.max_keepalive_connections,
            ),
        )

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        """Close the underlying client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()

    async def execute(
        self,
        request: HttpRequest,
        base_url: Optional[str],
        max_retries: Optional[int] = None,
    ) -> HttpResponse:
        """Send a request, retrying on 503 until the retry ceiling is reached.

        The final response (a 503 included, once retries are exhausted) is
        returned with retry_count set to the number of retries performed.
        """
        if max_retries is None:
            max_retries = self.settings.retry_attempts_on_service_unavailable

        retry_count = 0
        while True:
            response = await self._send_once(request, base_url, retry_count)

            if response.status_code != SERVICE_UNAVAILABLE:
                break

            if retry_count >= max_retries:
                logger.warning(
                    "service_unavailable_retries_exhausted",
                    method=request.method,
                    url=request.url,
                    retry_count=retry_count,
                )
                break

            logger.info(
                "service_unavailable_retrying",
                method=request.method,
                url=request.url,
                retry_count=retry_count,
            )
            await self.backoff.wait(retry_count)
            retry_count += 1

        response.retry_count = retry_count
        return response

    async def _send_once(
        self, request: HttpRequest, base_url: Optional[str], attempt: int
    ) -> HttpResponse:
        """Build a fresh wire request and send it once."""
        wire_request = request.prepare(base_url, self.settings.additional_headers)
        logger.debug(
            "request_sent",
            method=wire_request.method,
            url=str(wire_request.url),
            attempt=attempt,
        )

        start_time = time.time()
        try:
            raw_response = await self._client.send(wire_request, follow_redirects=False)
        except httpx.TransportError as e:
            logger.warning(
                "request_failed",
                method=wire_request.method,
                url=str(wire_request.url),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        response = HttpResponse.from_httpx(raw_response)
        if not response.elapsed:
            response.elapsed = time.time() - start_time

        logger.info(
            "response_received",
            method=wire_request.method,
            url=str(wire_request.url),
            status_code=response.status_code,
            attempt=attempt,
            elapsed=round(response.elapsed, 3),
        )
        return response
