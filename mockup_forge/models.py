"""Data models for artworks, derivative definitions and derivative products.

- ArtworkEvent: the accepted webhook payload, read-only once queued
- DerivativeDefinition: one row of the static derivative table
- DerivativeProduct: the product created per definition per artwork
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ArtworkEvent:
    """An artwork product as received from the catalog webhook."""

    id: str
    title: str
    description: str = ""
    image_url: str | None = None
    tags: str | list[str] = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ArtworkEvent":
        """Build an event from a Shopify ``products/create`` payload.

        The primary image is the first entry of ``images``; the singular
        ``image`` field is used when ``images`` is empty.
        """
        image_url = None
        images = payload.get("images") or []
        if images and isinstance(images[0], dict):
            image_url = images[0].get("src") or None
        if image_url is None and isinstance(payload.get("image"), dict):
            image_url = payload["image"].get("src") or None

        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title") or ""),
            description=payload.get("body_html") or "",
            image_url=image_url,
            tags=payload.get("tags") or "",
        )


@dataclass(frozen=True)
class Placement:
    """Region of a template where the artwork is overlaid (pixels)."""

    top: int
    left: int
    width: int
    height: int


@dataclass(frozen=True)
class VariantDefinition:
    option: str
    price: str
    sku_suffix: str | None = None


@dataclass(frozen=True)
class ColorTemplate:
    """Template used for the variants of one colour group."""

    color: str
    template: str


@dataclass(frozen=True)
class DerivativeDefinition:
    """Static description of one derivative product kind."""

    key: str
    name: str
    description: str
    template: str
    placement: Placement
    variants: tuple[VariantDefinition, ...] = ()
    price: str | None = None
    collections: tuple[str, ...] = ()
    color_templates: tuple[ColorTemplate, ...] = ()
    option_name: str = "Option"


@dataclass(frozen=True)
class DerivativeVariant:
    option1: str
    price: str
    sku: str


@dataclass
class DerivativeProduct:
    """A derivative product ready to be sent to the catalog."""

    title: str
    body_html: str
    vendor: str
    product_type: str
    image_attachment: str
    tags: list[str]
    variants: list[DerivativeVariant]
    published_at: str
    options: list[dict[str, str]] | None = None
    published_scope: str = "global"
    status: str = "active"

    def to_payload(self) -> dict[str, Any]:
        """Render the REST ``product`` object."""
        payload: dict[str, Any] = {
            "title": self.title,
            "body_html": self.body_html,
            "vendor": self.vendor,
            "product_type": self.product_type,
            "images": [{"attachment": self.image_attachment}],
            "tags": ", ".join(self.tags),
            "variants": [
                {"option1": v.option1, "price": v.price, "sku": v.sku}
                for v in self.variants
            ],
            "published_at": self.published_at,
            "published_scope": self.published_scope,
            "status": self.status,
        }
        if self.options:
            payload["options"] = self.options
        return payload
