"""Webhook dispatcher: filters product webhooks down to artworks and queues them.

Contract:
- Only products whose ``product_type`` equals the configured artwork
  category are queued; everything else is a no-op
- The full payload is queued unchanged (the worker reads tags and images
  from it)
- Queue failures propagate as QueueError (the handler answers 500 so the
  store re-delivers)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mockup_forge.queue import JobQueue

logger = logging.getLogger(__name__)


@dataclass
class ArtworkWebhook:
    """An eligible product webhook, ready to queue."""

    artwork_id: str
    title: str
    payload: dict[str, Any]


def parse_artwork_webhook(
    payload: dict[str, Any], artwork_product_type: str
) -> ArtworkWebhook | None:
    """Return the artwork webhook, or None if the product is not an artwork."""
    if payload.get("product_type") != artwork_product_type:
        return None
    return ArtworkWebhook(
        artwork_id=str(payload.get("id", "")),
        title=str(payload.get("title", "")),
        payload=payload,
    )


def dispatch_artwork(webhook: ArtworkWebhook, queue: JobQueue) -> str:
    """Queue one artwork job and return its job id."""
    job_id = queue.enqueue(webhook.payload)
    logger.info(
        "Queued artwork %s (%s) as job %s", webhook.artwork_id, webhook.title, job_id
    )
    return job_id
