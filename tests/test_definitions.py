"""Tests for the static derivative table."""

from __future__ import annotations

import pytest

from mockup_forge.catalog.definitions import (
    DEFAULT_PLACEMENT,
    DERIVATIVE_DEFINITIONS,
    PLACEMENTS,
    get_definition,
)
from mockup_forge.products import variant_sku


def test_table_order():
    assert [d.key for d in DERIVATIVE_DEFINITIONS] == [
        "plexiglas",
        "tote-bag",
        "tee-shirt-homme",
        "tee-shirt-femme",
        "grand-sac-de-plage",
        "sweatshirt",
        "coque-de-telephone",
        "coque-pc-portable",
    ]


def test_keys_and_names_unique():
    assert len({d.key for d in DERIVATIVE_DEFINITIONS}) == len(DERIVATIVE_DEFINITIONS)
    assert len({d.name for d in DERIVATIVE_DEFINITIONS}) == len(DERIVATIVE_DEFINITIONS)


@pytest.mark.parametrize("definition", DERIVATIVE_DEFINITIONS, ids=lambda d: d.key)
def test_definition_is_well_formed(definition):
    p = definition.placement
    assert p.width > 0 and p.height > 0
    assert p.top >= 0 and p.left >= 0
    assert definition.template
    assert definition.collections
    assert definition.variants or definition.price


@pytest.mark.parametrize("definition", DERIVATIVE_DEFINITIONS, ids=lambda d: d.key)
def test_skus_unique_per_definition(definition):
    skus = [variant_sku("1", v.option, v.sku_suffix) for v in definition.variants]
    assert len(skus) == len(set(skus))


def test_placements():
    assert get_definition("tote-bag").placement == PLACEMENTS["tote-bag"]
    assert get_definition("coque-pc-portable").placement == DEFAULT_PLACEMENT


def test_sweatshirt_colour_templates_cover_variants():
    sweatshirt = get_definition("sweatshirt")
    colours = {ct.color for ct in sweatshirt.color_templates}
    assert colours == {"Blanc", "Noir", "Bleu Marine"}
    assert {v.option.split(" - ")[0] for v in sweatshirt.variants} == colours


def test_unknown_key():
    with pytest.raises(KeyError):
        get_definition("mug")
