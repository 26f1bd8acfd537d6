"""Webhook HTTP handlers: FastAPI routes for inbound product webhooks.

The handler:
1. Reads the raw body (needed for HMAC verification)
2. Verifies the signature against the configured secret
3. Parses the JSON payload
4. Filters to artworks and queues one durable job
5. Answers immediately; processing happens in the worker

Security contract:
- Never return error details to the webhook caller (info disclosure)
- 400 for a missing signature or an unparseable body, 401 for a bad one
- Nothing is parsed or queued before the signature is verified
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import json
import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mockup_forge.config import Settings
from mockup_forge.errors import QueueError
from mockup_forge.queue import JobQueue
from mockup_forge.webhooks.dispatcher import dispatch_artwork, parse_artwork_webhook
from mockup_forge.webhooks.verification import SIGNATURE_HEADER, verify_shopify

logger = logging.getLogger(__name__)

# Webhook receive counter for monitoring (in-memory, per process)
_webhook_counts: dict[str, int] = {}


def _log_webhook(topic: str, product_id: str, status: str) -> None:
    """Audit log for webhook activity."""
    _webhook_counts[status] = _webhook_counts.get(status, 0) + 1
    logger.info(
        "WEBHOOK_AUDIT topic=%s product=%s status=%s count=%d",
        topic,
        product_id,
        status,
        _webhook_counts[status],
    )


async def _handle_webhook(request: Request) -> JSONResponse:
    start = time.time()
    topic = request.headers.get("x-shopify-topic", "unknown")
    product_id = "unknown"

    try:
        settings: Settings = request.app.state.settings
        queue: JobQueue = request.app.state.queue
        body = await request.body()

        # 1. Verify signature
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            _log_webhook(topic, product_id, "signature_missing")
            return JSONResponse({"error": "missing HMAC signature"}, status_code=400)
        if not verify_shopify(body, signature, settings.shopify_webhook_secret):
            _log_webhook(topic, product_id, "signature_failed")
            return JSONResponse({"error": "invalid signature"}, status_code=401)

        # 2. Parse JSON payload
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None
        if not isinstance(payload, dict):
            _log_webhook(topic, product_id, "invalid_json")
            return JSONResponse({"error": "invalid JSON payload"}, status_code=400)

        product_id = str(payload.get("id", "unknown"))

        # 3. Artworks only
        webhook = parse_artwork_webhook(payload, settings.artwork_product_type)
        if webhook is None:
            _log_webhook(topic, product_id, "not_eligible")
            return JSONResponse({"message": "product not eligible"}, status_code=200)

        # 4. Queue
        job_id = dispatch_artwork(webhook, queue)
    except QueueError:
        logger.exception("Failed to queue webhook for product %s", product_id)
        _log_webhook(topic, product_id, "queue_failed")
        return JSONResponse({"error": "failed to queue webhook"}, status_code=500)
    except Exception:
        logger.exception("Unexpected error handling webhook for product %s", product_id)
        _log_webhook(topic, product_id, "error")
        return JSONResponse({"error": "internal server error"}, status_code=500)

    _log_webhook(topic, product_id, "queued")
    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: product %s", elapsed_ms, product_id)

    return JSONResponse(
        {"message": "webhook received and queued", "job_id": job_id}, status_code=200
    )


def register_webhook_routes(app: FastAPI) -> None:
    """Register the webhook and health routes.

    Expects ``app.state.settings`` and ``app.state.queue`` to be set.
    """

    @app.post("/webhook")
    async def product_webhook(request: Request):
        """Receive product webhooks (signature-verified)."""
        return await _handle_webhook(request)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/webhook/status")
    async def webhook_status():
        """Webhook receive counts by outcome."""
        return {"counts": dict(_webhook_counts)}

    logger.info("Webhook routes registered: /webhook, /health")
