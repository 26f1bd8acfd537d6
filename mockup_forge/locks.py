"""Artwork locks: process-local lock map and Redis-backed claims.

Two layers keep one artwork from being processed twice at once:

- ProcessLocks: in-memory, collapses duplicate dequeues inside one process
  (shared by all worker threads of that process)
- ArtworkClaimStore: Redis SET NX PX, gives mutual exclusion across worker
  processes around the tag read-then-write. Claims expire on their own so
  a crashed worker cannot hold an artwork forever.

Key pattern: mockup_forge:claim:{artwork_id}
"""

from __future__ import annotations

import logging
import threading
import uuid

import redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "mockup_forge:claim"

# Delete the claim only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class ProcessLocks:
    """Non-blocking, process-local lock map keyed by artwork id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held: set[str] = set()

    def acquire(self, artwork_id: str) -> bool:
        """Mark ``artwork_id`` as held. False if it already is."""
        with self._guard:
            if artwork_id in self._held:
                return False
            self._held.add(artwork_id)
            return True

    def release(self, artwork_id: str) -> None:
        with self._guard:
            self._held.discard(artwork_id)

    def is_held(self, artwork_id: str) -> bool:
        with self._guard:
            return artwork_id in self._held


class ArtworkClaimStore:
    """Cross-process claims on artworks, stored in Redis."""

    def __init__(self, client: redis.Redis, ttl_seconds: float) -> None:
        self._redis = client
        self._ttl_ms = max(1000, int(ttl_seconds * 1000))

    @staticmethod
    def key(artwork_id: str) -> str:
        return f"{_KEY_PREFIX}:{artwork_id}"

    def acquire(self, artwork_id: str) -> str | None:
        """Claim ``artwork_id``. Returns the owner token, or None if taken.

        Redis failures propagate: without a claim backend the job fails and
        is retried rather than running unprotected.
        """
        token = uuid.uuid4().hex
        acquired = self._redis.set(self.key(artwork_id), token, nx=True, px=self._ttl_ms)
        if not acquired:
            logger.info("Artwork %s is claimed by another worker", artwork_id)
            return None
        return token

    def release(self, artwork_id: str, token: str) -> None:
        try:
            self._redis.eval(_RELEASE_SCRIPT, 1, self.key(artwork_id), token)
        except redis.RedisError:
            # The claim expires on its own; a stuck claim only delays retries
            logger.warning("Failed to release claim on artwork %s", artwork_id, exc_info=True)
