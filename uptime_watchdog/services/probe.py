import logging
import time

import httpx

from ..schemas.probe import ProbeResult, is_up_status
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

USER_AGENT = "uptime-watchdog/1.0"


def build_client(timeout: float) -> httpx.Client:
    """Shared client for probe workers. httpx.Client is safe to use from many threads."""
    return httpx.Client(
        timeout=timeout,
        follow_redirects=False,  # 3xx is observed as-is and counts as up
        headers={"User-Agent": USER_AGENT},
    )


def probe_target(client: httpx.Client, name: str, url: str, timeout: float | None = None) -> ProbeResult:
    """
    Issue one GET against url and classify the outcome.

    Never raises: transport errors become is_up=False with http_status=0.
    Latency is measured until the response headers arrive (the body is not read).
    """
    timestamp = utcnow()
    start = time.perf_counter()
    try:
        request_timeout = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
        with client.stream("GET", url, timeout=request_timeout) as response:
            latency_ms = int((time.perf_counter() - start) * 1000)
            status_code = response.status_code
    except httpx.HTTPError as exc:
        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(f"Probe failed for {name} ({url}): {exc!r}")
        return ProbeResult(
            target=name,
            url=url,
            timestamp=timestamp,
            http_status=0,
            is_up=False,
            latency_ms=latency_ms,
            error_message=_describe_error(exc),
        )
    except Exception as exc:
        # Invalid URLs and the like surface as non-httpx errors
        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.warning(f"⚠️ Unexpected probe error for {name} ({url}): {exc!r}")
        return ProbeResult(
            target=name,
            url=url,
            timestamp=timestamp,
            http_status=0,
            is_up=False,
            latency_ms=latency_ms,
            error_message=str(exc) or type(exc).__name__,
        )

    is_up = is_up_status(status_code)
    return ProbeResult(
        target=name,
        url=url,
        timestamp=timestamp,
        http_status=status_code,
        is_up=is_up,
        latency_ms=latency_ms,
        error_message=None if is_up else f"HTTP {status_code}",
    )


def _describe_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout: {exc}" if str(exc) else "timeout"
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
