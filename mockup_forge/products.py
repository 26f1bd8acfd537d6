"""Derivative product construction: titles, SKUs, variants, payloads.

Pure functions. The only input that is not derived from the artwork and
the definition is ``published_at``, which callers may pin for tests.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone

from mockup_forge.models import (
    ArtworkEvent,
    DerivativeDefinition,
    DerivativeProduct,
    DerivativeVariant,
)

DERIVATIVE_TAGS = ("Derivative", "GeneratedByAutomation")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ASCII slug with accents folded and separators removed.

    >>> slugify("Bleu Marine - L")
    'bleumarinel'
    >>> slugify("Écru Été")
    'ecruete'
    """
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_only = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub("", ascii_only.lower())


def derivative_title(artwork_title: str, definition_name: str) -> str:
    return f"{artwork_title} - {definition_name}"


def variant_sku(artwork_id: str, option: str, sku_suffix: str | None = None) -> str:
    suffix = sku_suffix if sku_suffix else slugify(option)
    return f"{artwork_id}-{suffix}"


def build_variants(
    artwork_id: str, definition: DerivativeDefinition
) -> list[DerivativeVariant]:
    """Variants with computed SKUs; a single ``Standard`` one when none are defined."""
    if not definition.variants:
        return [
            DerivativeVariant(
                option1="Standard",
                price=definition.price or "0.00",
                sku=f"{artwork_id}-standard",
            )
        ]
    return [
        DerivativeVariant(
            option1=v.option,
            price=v.price,
            sku=variant_sku(artwork_id, v.option, v.sku_suffix),
        )
        for v in definition.variants
    ]


def build_description(definition: DerivativeDefinition, artwork_title: str) -> str:
    return (
        f"<p>{definition.description}</p>"
        f"<p>Produit dérivé de l’œuvre \"{artwork_title}\".</p>"
    )


def build_derivative_product(
    artwork: ArtworkEvent,
    definition: DerivativeDefinition,
    image_b64: str,
    *,
    vendor: str,
    published_at: datetime | None = None,
) -> DerivativeProduct:
    """Assemble the full product for one definition of one artwork."""
    when = published_at or datetime.now(timezone.utc)
    return DerivativeProduct(
        title=derivative_title(artwork.title, definition.name),
        body_html=build_description(definition, artwork.title),
        vendor=vendor,
        product_type=definition.name,
        image_attachment=image_b64,
        tags=[DERIVATIVE_TAGS[0], artwork.id, DERIVATIVE_TAGS[1]],
        variants=build_variants(artwork.id, definition),
        published_at=when.isoformat(),
        options=[{"name": definition.option_name}] if definition.variants else None,
    )
