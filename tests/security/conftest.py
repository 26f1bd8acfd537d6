"""HTTP-level fixtures for webhook intake tests.

- Builds the FastAPI app with an in-memory MagicMock queue (no Redis)
- Wraps it in a TestClient that returns 500s instead of raising
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from mockup_forge.serve import create_app


@pytest.fixture()
def queue():
    q = MagicMock()
    q.enqueue.return_value = "job-abc"
    return q


@pytest.fixture()
def app(settings, queue):
    return create_app(settings, queue=queue)


@pytest.fixture()
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture()
def post_webhook(client, sign_body):
    """POST raw bytes to /webhook, signed unless ``signature`` is given."""

    def _post(body: bytes, signature: str | None = "auto", **headers):
        request_headers = {"Content-Type": "application/json", **headers}
        if signature == "auto":
            request_headers["X-Shopify-Hmac-SHA256"] = sign_body(body)
        elif signature is not None:
            request_headers["X-Shopify-Hmac-SHA256"] = signature
        return client.post("/webhook", content=body, headers=request_headers)

    return _post
