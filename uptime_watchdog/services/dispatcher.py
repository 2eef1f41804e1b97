"""
Probe round dispatcher.

A fixed-size thread pool pulls targets from the executor queue, so concurrency
stays bounded no matter how many targets are configured. A per-round deadline
keeps a hung target from delaying the next round indefinitely.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Iterable

from .probe import build_client, probe_target
from ..config import DEADLINE_MARGIN_SECONDS
from ..schemas.probe import ProbeResult
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

DEADLINE_ERROR = "probe exceeded round deadline"


class ProbeDispatcher:
    def __init__(
        self,
        timeout: float,
        max_workers: int = 10,
        round_deadline: float | None = None,
        client=None,
        deadline_margin: float = DEADLINE_MARGIN_SECONDS,
    ):
        self.max_workers = max(1, max_workers)
        self.deadline_margin = deadline_margin
        self.configure(timeout, round_deadline)
        self._client = client or build_client(timeout)
        self._owns_client = client is None
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="probe")
        # Names cancelled at the last deadline; they go first next round
        self._carry_over: list[str] = []
        self._lock = threading.Lock()

    def configure(self, timeout: float, round_deadline: float | None = None):
        """
        Set the probe timeout and round deadline used from the next round on.

        The deadline never drops below timeout + deadline_margin, otherwise a
        slow but healthy target would be cut off and reported down.
        """
        self.timeout = timeout
        if round_deadline is not None:
            round_deadline = max(round_deadline, timeout + self.deadline_margin)
        self.round_deadline = round_deadline

    def order_targets(self, targets: list[tuple[str, str]]) -> list[tuple[str, str]]:
        """Targets skipped last round first, the rest in their given order."""
        with self._lock:
            carried = set(self._carry_over)
        if not carried:
            return targets
        first = [t for t in targets if t[0] in carried]
        rest = [t for t in targets if t[0] not in carried]
        return first + rest

    def run_round(self, targets: Iterable[tuple[str, str]]) -> list[ProbeResult]:
        """
        Probe every (name, url) pair and return once all probes are done or the
        round deadline passes.

        Probes still running at the deadline are reported as down. Probes that
        never left the queue are cancelled and omitted from the round, and are
        submitted first on the next round so the same tail is not starved.
        Result order is unspecified.
        """
        targets = self.order_targets(list(targets))
        if not targets:
            return []

        started = time.perf_counter()
        futures = {
            self._executor.submit(probe_target, self._client, name, url, self.timeout): (name, url)
            for name, url in targets
        }
        done, not_done = wait(futures, timeout=self.round_deadline)

        results = [future.result() for future in done]

        skipped = []
        for future in not_done:
            name, url = futures[future]
            if future.cancel():
                skipped.append(name)
                continue
            # Already running: the probe itself is hung past the deadline
            results.append(ProbeResult(
                target=name,
                url=url,
                timestamp=utcnow(),
                http_status=0,
                is_up=False,
                latency_ms=int((time.perf_counter() - started) * 1000),
                error_message=DEADLINE_ERROR,
            ))

        with self._lock:
            self._carry_over = skipped

        if skipped:
            logger.warning(
                f"⚠️ Round deadline ({self.round_deadline}s) reached; "
                f"{len(skipped)} target(s) not probed this round: {', '.join(sorted(skipped))}"
            )

        elapsed = time.perf_counter() - started
        up = sum(1 for r in results if r.is_up)
        logger.info(f"🔁 Round finished in {elapsed:.2f}s: {up}/{len(results)} up")
        return results

    def close(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._owns_client:
            self._client.close()
