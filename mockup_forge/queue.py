"""Durable job queue on Redis Streams.

One stream entry per accepted webhook. Workers read through a consumer
group, so an entry stays pending until acknowledged and a crashed worker's
entries are reclaimed with XAUTOCLAIM.

Failure handling (the queue's own retry policy):
- retry_later(): ack the entry and park a copy in a sorted set scored by
  its due time, attempts + 1
- promote_due(): move due entries back onto the stream. ZREM decides which
  worker owns a promotion, so a parked job is re-queued exactly once
- dead_letter(): ack the entry and append it to the dead-letter stream

Key layout (name = Settings.queue_name):
    mockup_forge:{name}          jobs stream
    mockup_forge:{name}:delayed  retry sorted set
    mockup_forge:{name}:dead     dead-letter stream
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

import redis

from mockup_forge.config import Settings
from mockup_forge.errors import QueueError

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "derivative-workers"

_STREAM_MAXLEN = 10_000
_DEAD_MAXLEN = 5_000


def redis_from_settings(settings: Settings) -> redis.Redis:
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


@dataclass(frozen=True)
class Job:
    """A queued webhook payload."""

    entry_id: str
    job_id: str
    payload: dict[str, Any]
    attempts: int = 0
    enqueued_at: float = 0.0

    @classmethod
    def from_fields(cls, entry_id: str, fields: dict[str, str]) -> "Job":
        try:
            payload = json.loads(fields.get("payload", "{}"))
        except json.JSONDecodeError:
            logger.warning("Job %s has an undecodable payload", entry_id)
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        return cls(
            entry_id=entry_id,
            job_id=fields.get("job_id", entry_id),
            payload=payload,
            attempts=int(fields.get("attempts", "0") or 0),
            enqueued_at=float(fields.get("enqueued_at", "0") or 0),
        )

    def to_fields(self, attempts: int | None = None) -> dict[str, str]:
        return {
            "job_id": self.job_id,
            "attempts": str(self.attempts if attempts is None else attempts),
            "enqueued_at": f"{self.enqueued_at:.3f}",
            "payload": json.dumps(self.payload, default=str),
        }


class JobQueue:
    """Redis Streams job queue with delayed retries and a dead-letter stream."""

    def __init__(self, client: redis.Redis, name: str = "shopify-webhook") -> None:
        self._redis = client
        self.stream = f"mockup_forge:{name}"
        self.delayed_key = f"{self.stream}:delayed"
        self.dead_stream = f"{self.stream}:dead"

    # ── Producing ────────────────────────────────────────────────────────

    def enqueue(self, payload: dict[str, Any]) -> str:
        """Append one job. Raises QueueError if Redis rejects it."""
        job = Job(
            entry_id="",
            job_id=uuid.uuid4().hex[:16],
            payload=payload,
            enqueued_at=time.time(),
        )
        try:
            self._redis.xadd(self.stream, job.to_fields(), maxlen=_STREAM_MAXLEN, approximate=True)
        except redis.RedisError as exc:
            raise QueueError(f"Failed to enqueue job: {exc}") from exc
        return job.job_id

    # ── Consumer group ───────────────────────────────────────────────────

    def ensure_group(self) -> None:
        """Create the consumer group (idempotent)."""
        try:
            self._redis.xgroup_create(self.stream, CONSUMER_GROUP, id="0", mkstream=True)
            logger.info("Consumer group '%s' created on %s", CONSUMER_GROUP, self.stream)
        except redis.ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise

    def read(self, consumer: str, *, count: int = 1, block_ms: int = 2000) -> list[Job]:
        """Read new entries for ``consumer`` (XREADGROUP with BLOCK)."""
        try:
            result = self._redis.xreadgroup(
                CONSUMER_GROUP,
                consumer,
                {self.stream: ">"},
                count=count,
                block=block_ms,
            )
        except redis.RedisError:
            logger.warning("Queue read failed: stream=%s consumer=%s", self.stream, consumer, exc_info=True)
            return []
        if not result:
            return []
        # result is [(stream_name, [(entry_id, fields), ...])]
        return [Job.from_fields(entry_id, fields) for entry_id, fields in result[0][1]]

    def claim_stale(
        self, consumer: str, *, min_idle_ms: int = 60_000, count: int = 10
    ) -> list[Job]:
        """Claim entries another consumer left unacknowledged (crash recovery)."""
        try:
            # XAUTOCLAIM returns (next_start_id, [(entry_id, fields), ...], deleted_ids)
            response = self._redis.xautoclaim(
                self.stream,
                CONSUMER_GROUP,
                consumer,
                min_idle_time=min_idle_ms,
                count=count,
            )
        except redis.RedisError:
            logger.warning("Queue claim_stale failed: stream=%s", self.stream, exc_info=True)
            return []
        entries = response[1]
        jobs = [Job.from_fields(entry_id, fields) for entry_id, fields in entries if fields]
        if jobs:
            logger.info(
                "Claimed %d stale jobs from %s (idle > %dms)", len(jobs), self.stream, min_idle_ms
            )
        return jobs

    def ack(self, job: Job) -> None:
        self._redis.xack(self.stream, CONSUMER_GROUP, job.entry_id)

    def pending_count(self) -> int:
        info = self._redis.xpending(self.stream, CONSUMER_GROUP)
        return info.get("pending", 0) if isinstance(info, dict) else 0

    # ── Retries and dead letters ─────────────────────────────────────────

    def retry_later(
        self,
        job: Job,
        delay: float,
        *,
        count_attempt: bool = True,
        now: float | None = None,
    ) -> None:
        """Acknowledge ``job`` and schedule a copy ``delay`` seconds from now.

        ``count_attempt=False`` re-queues without spending an attempt.
        """
        due = (now if now is not None else time.time()) + delay
        attempts = job.attempts + 1 if count_attempt else job.attempts
        member = json.dumps(job.to_fields(attempts=attempts), sort_keys=True)
        pipe = self._redis.pipeline(transaction=True)
        pipe.zadd(self.delayed_key, {member: due})
        pipe.xack(self.stream, CONSUMER_GROUP, job.entry_id)
        pipe.execute()

    def promote_due(self, *, now: float | None = None, limit: int = 50) -> int:
        """Move retries whose due time has passed back onto the stream."""
        cutoff = now if now is not None else time.time()
        members = self._redis.zrangebyscore(self.delayed_key, "-inf", cutoff, start=0, num=limit)
        promoted = 0
        for member in members:
            if not self._redis.zrem(self.delayed_key, member):
                continue  # Another worker promoted it
            self._redis.xadd(self.stream, json.loads(member), maxlen=_STREAM_MAXLEN, approximate=True)
            promoted += 1
        if promoted:
            logger.info("Promoted %d delayed jobs onto %s", promoted, self.stream)
        return promoted

    def delayed_count(self) -> int:
        return self._redis.zcard(self.delayed_key)

    def dead_letter(self, job: Job, reason: str) -> None:
        """Acknowledge ``job`` and record it on the dead-letter stream."""
        fields = job.to_fields()
        fields["reason"] = reason[:1000]
        fields["failed_at"] = f"{time.time():.3f}"
        pipe = self._redis.pipeline(transaction=True)
        pipe.xadd(self.dead_stream, fields, maxlen=_DEAD_MAXLEN, approximate=True)
        pipe.xack(self.stream, CONSUMER_GROUP, job.entry_id)
        pipe.execute()

    def dead_letters(self, count: int = 20) -> list[dict[str, Any]]:
        """Most recent dead-lettered jobs, newest first."""
        entries = self._redis.xrevrange(self.dead_stream, count=count)
        letters = []
        for entry_id, fields in entries:
            job = Job.from_fields(entry_id, fields)
            letters.append(
                {
                    "entry_id": entry_id,
                    "job_id": job.job_id,
                    "artwork_id": job.payload.get("id"),
                    "attempts": job.attempts,
                    "reason": fields.get("reason", ""),
                    "failed_at": float(fields.get("failed_at", "0") or 0),
                }
            )
        return letters


_queue: JobQueue | None = None


def get_job_queue(settings: Settings) -> JobQueue:
    """Get or create the singleton JobQueue."""
    global _queue
    if _queue is None:
        _queue = JobQueue(redis_from_settings(settings), settings.queue_name)
    return _queue
