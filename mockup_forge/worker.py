"""Derivative worker: drains the job queue through the orchestrator.

Runs as a background thread (or in the foreground via run_forever), one
job at a time. Per poll iteration:
1. promote delayed retries whose due time has passed
2. reclaim entries a crashed worker left pending
3. read new entries

Outcome of each job:
- returned normally (generated or skipped) -> ack
- skipped because another process holds the claim -> re-queue, same attempt
- raised a retryable error -> ack + re-queue after exponential backoff
- raised a non-retryable error, or ran out of attempts -> dead-letter
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from mockup_forge.catalog.retry import compute_delay
from mockup_forge.config import Settings
from mockup_forge.errors import JobTimeoutError, MockupForgeError
from mockup_forge.orchestrator import DerivativeOrchestrator, OutcomeStatus
from mockup_forge.queue import Job, JobQueue

logger = logging.getLogger(__name__)

# Extra idle time before a pending entry counts as abandoned
_STALE_MARGIN_SECONDS = 60


class DerivativeWorker:
    """Background consumer for the derivative job queue."""

    def __init__(
        self,
        queue: JobQueue,
        orchestrator: DerivativeOrchestrator,
        settings: Settings,
        consumer_name: str = "derivative-worker-0",
        *,
        block_ms: int = 2000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._queue = queue
        self._orchestrator = orchestrator
        self._settings = settings
        self._consumer_name = consumer_name
        self._block_ms = block_ms
        self._sleep = sleep
        self._stale_ms = int((settings.job_timeout_seconds + _STALE_MARGIN_SECONDS) * 1000)
        self._running = False
        self._thread: threading.Thread | None = None

    @property
    def consumer_name(self) -> str:
        return self._consumer_name

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name=self._consumer_name,
        )
        self._thread.start()
        logger.info("Derivative worker started: %s", self._consumer_name)

    def stop(self, timeout: float | None = None) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Derivative worker stopped: %s", self._consumer_name)

    def run_forever(self) -> None:
        """Poll in the calling thread until stop() is called."""
        self._running = True
        self._poll_loop()

    def _poll_loop(self) -> None:
        while self._running:
            try:
                if not self.run_once():
                    self._sleep(0.5)
            except Exception:
                logger.exception("Derivative worker poll error")
                self._sleep(2)

    def run_once(self) -> int:
        """One poll iteration. Returns the number of jobs handled."""
        self._queue.promote_due()

        jobs = self._queue.claim_stale(
            self._consumer_name, min_idle_ms=self._stale_ms, count=5,
        )
        jobs += self._queue.read(self._consumer_name, count=1, block_ms=self._block_ms)
        for job in jobs:
            self.handle(job)
        return len(jobs)

    # ── Per job ──────────────────────────────────────────────────────────

    def handle(self, job: Job) -> None:
        """Run one job and settle it on the queue (ack, retry or dead-letter)."""
        logger.info(
            "Job %s picked up (artwork=%s, attempt %d)",
            job.job_id,
            job.payload.get("id"),
            job.attempts + 1,
        )
        try:
            outcome = self._orchestrator.process(job.payload)
        except JobTimeoutError as exc:
            logger.error("Job %s timed out: %s", job.job_id, exc.message)
            self._settle_failure(job, exc)
            return
        except MockupForgeError as exc:
            logger.error("Job %s failed: %s", job.job_id, exc.message)
            self._settle_failure(job, exc)
            return
        except Exception as exc:
            logger.exception("Job %s failed unexpectedly", job.job_id)
            self._settle_failure(job, exc)
            return

        if outcome.status is OutcomeStatus.SKIPPED_CLAIMED:
            # Holder may have crashed; a later pass sees the tags or an expired claim
            delay = self._settings.job_backoff_seconds
            self._queue.retry_later(job, delay, count_attempt=False)
            logger.info(
                "JOB_AUDIT job=%s artwork=%s status=claimed_requeued delay=%.1fs",
                job.job_id,
                outcome.artwork_id,
                delay,
            )
            return

        self._queue.ack(job)
        logger.info(
            "Job %s done: artwork=%s status=%s",
            job.job_id,
            outcome.artwork_id,
            outcome.status.value,
        )

    def _settle_failure(self, job: Job, exc: Exception) -> None:
        reason = f"{type(exc).__name__}: {exc}"
        retryable = getattr(exc, "retryable", True)
        attempts = job.attempts + 1

        if not retryable or attempts >= self._settings.job_max_attempts:
            self._queue.dead_letter(job, reason)
            logger.error(
                "JOB_AUDIT job=%s artwork=%s status=dead_lettered attempts=%d reason=%s",
                job.job_id,
                job.payload.get("id"),
                attempts,
                reason,
            )
            return

        delay = compute_delay(
            job.attempts,
            self._settings.job_backoff_seconds,
            self._settings.job_backoff_max_seconds,
            jitter=0.2,
        )
        self._queue.retry_later(job, delay)
        logger.warning(
            "JOB_AUDIT job=%s artwork=%s status=retry_scheduled attempts=%d delay=%.1fs",
            job.job_id,
            job.payload.get("id"),
            attempts,
            delay,
        )
