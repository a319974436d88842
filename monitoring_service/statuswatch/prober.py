"""
HTTP reachability probes with bounded retries.

``Prober.probe`` never raises. Only transport failures (connection errors,
timeouts, invalid URLs) are retried. Each attempt, body included, is bounded
by ``timeout`` seconds as a whole. Any HTTP response, whatever its status
code, counts as having reached the endpoint and is returned as-is. The
status code is judged later, when the overall verdict is computed.

Retry policy: up to ``max_attempts`` attempts, sleeping
``attempt * backoff_seconds`` between them (1 s, then 2 s by default).
When every attempt fails the result is the unreachable sentinel
``status=0, responseTime=-1``.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Sequence

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind

from statuswatch.config import EndpointConfig
from statuswatch.snapshots import ProbeResult
from statuswatch.telemetry import ENDPOINT_RESPONSE_TIME, ENDPOINT_STATUS_CODE, PROBE_ATTEMPTS

logger = logging.getLogger("prober")

PROBE_TIMEOUT_SECONDS = 5.0
MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 1.0


class Prober:
    """Probe endpoints over HTTP GET.

    Args:
        timeout: Deadline in seconds for one whole attempt, body included.
        max_attempts: Total attempts per endpoint, including the first.
        backoff_seconds: Base delay; the wait after attempt *n* is
            ``n * backoff_seconds``.
        transport: Optional ``httpx`` transport (tests use
            ``httpx.MockTransport``).
        sleep: Coroutine used to wait between attempts.
        clock: Monotonic clock in seconds used to time responses.
    """

    def __init__(
        self,
        timeout: float = PROBE_TIMEOUT_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_seconds: float = BACKOFF_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def probe(self, endpoint: EndpointConfig, client: httpx.AsyncClient | None = None) -> ProbeResult:
        """Probe a single endpoint, retrying transport failures."""
        if client is None:
            async with self._client() as own_client:
                return await self.probe(endpoint, own_client)

        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span(
            "probe endpoint",
            kind=SpanKind.CLIENT,
            attributes={
                "probe.endpoint.name": endpoint.name,
                "url.full": endpoint.url,
            },
        ) as span:
            for attempt in range(1, self.max_attempts + 1):
                started = self._clock()
                try:
                    # httpx timeouts apply per phase; a trickling body must
                    # still be cut off at the attempt deadline
                    response = await asyncio.wait_for(client.get(endpoint.url), self.timeout)
                except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as exc:
                    PROBE_ATTEMPTS.labels(outcome="failed").inc()
                    logger.warning(
                        "Ping attempt %d failed for %s (%s): %s",
                        attempt,
                        endpoint.name,
                        endpoint.url,
                        str(exc) or type(exc).__name__,
                    )
                    if attempt < self.max_attempts:
                        await self._sleep(attempt * self.backoff_seconds)
                    continue

                elapsed_ms = int((self._clock() - started) * 1000)
                PROBE_ATTEMPTS.labels(outcome="reached").inc()
                span.set_attribute("http.response.status_code", response.status_code)
                span.set_attribute("probe.attempts", attempt)
                logger.debug(
                    "Pinged %s (%s): %d in %dms",
                    endpoint.name,
                    endpoint.url,
                    response.status_code,
                    elapsed_ms,
                )
                return self._record(ProbeResult(endpoint.url, response.status_code, elapsed_ms), endpoint)

            span.set_attribute("probe.attempts", self.max_attempts)
            logger.error("All ping attempts failed for %s (%s)", endpoint.name, endpoint.url)
            return self._record(ProbeResult.unreachable(endpoint.url), endpoint)

    async def probe_all(self, endpoints: Sequence[EndpointConfig]) -> list[ProbeResult]:
        """Probe every endpoint concurrently.

        Returns one result per endpoint in input order, once every probe
        (retries included) has finished.
        """
        logger.info("Pinging %d endpoints", len(endpoints))
        async with self._client() as client:
            results = await asyncio.gather(*(self.probe(e, client) for e in endpoints))
        return list(results)

    @staticmethod
    def _record(result: ProbeResult, endpoint: EndpointConfig) -> ProbeResult:
        ENDPOINT_STATUS_CODE.labels(endpoint=endpoint.name).set(result.status_code)
        ENDPOINT_RESPONSE_TIME.labels(endpoint=endpoint.name).set(result.response_time_ms)
        return result
