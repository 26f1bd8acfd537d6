"""Shared fixtures for the mockup-forge test suite."""

from __future__ import annotations

import base64
import hashlib
import hmac
import io
from pathlib import Path

import pytest
from PIL import Image

from mockup_forge.config import Settings

WEBHOOK_SECRET = "test-webhook-secret"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Compute a valid X-Shopify-Hmac-SHA256 value for ``body``."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def png_bytes(size: tuple[int, int] = (40, 30), color=(200, 30, 30, 255), mode: str = "RGBA") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def templates_dir(tmp_path: Path) -> Path:
    """Directory holding an 800x1000 white template for every template name."""
    root = tmp_path / "templates"
    names = [
        "plexiglas.png",
        "tote-bag.png",
        "tee-shirt-homme.png",
        "tee-shirt-femme.png",
        "grand-sac-de-plage.png",
        "sweatshirt-blanc.png",
        "sweatshirt-noir.png",
        "sweatshirt-bleumarine.png",
        "phone/generic-phone.png",
    ]
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (800, 1000), (255, 255, 255)).save(path)
    return root


@pytest.fixture()
def settings(templates_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        shopify_webhook_secret=WEBHOOK_SECRET,
        shopify_admin_domain="https://shop.example/admin/api/2025-01",
        shopify_admin_api_access_token="shpat_test",
        shopify_store_domain_url="https://shop.example",
        templates_dir=templates_dir,
        job_timeout_seconds=60,
        job_max_attempts=3,
        job_backoff_seconds=5,
        job_backoff_max_seconds=60,
    )


@pytest.fixture()
def artwork_png() -> bytes:
    return png_bytes((60, 40))


@pytest.fixture()
def artwork_payload() -> dict:
    return {
        "id": 123,
        "title": "Le Jardin",
        "body_html": "<p>Huile sur toile</p>",
        "product_type": "Oeuvre",
        "tags": "Peinture, Paysage",
        "images": [{"src": "https://cdn.example/jardin.png"}],
    }


@pytest.fixture()
def sign_body():
    return sign


@pytest.fixture()
def make_png():
    return png_bytes
