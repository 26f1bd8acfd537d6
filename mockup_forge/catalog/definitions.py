"""Derivative catalog table.

One record per derivative kind: template, placement rectangle, pricing,
variants and target collections. Declaration order is processing order.
Template filenames are relative to ``Settings.templates_dir``.
"""

from __future__ import annotations

from mockup_forge.models import (
    ColorTemplate,
    DerivativeDefinition,
    Placement,
    VariantDefinition,
)

# Placement rectangles, keyed by template family
PLACEMENTS: dict[str, Placement] = {
    "grand-sac-de-plage": Placement(top=524, left=327, width=264, height=265),
    "coque-de-telephone": Placement(top=50, left=30, width=200, height=200),
    "tote-bag": Placement(top=522, left=321, width=309, height=310),
    "tee-shirt-homme": Placement(top=164, left=291, width=329, height=330),
    "tee-shirt-femme": Placement(top=321, left=312, width=340, height=341),
    "sweatshirt": Placement(top=216, left=318, width=336, height=337),
    "plexiglas": Placement(top=49, left=317, width=228, height=320),
}

DEFAULT_PLACEMENT = Placement(top=0, left=0, width=500, height=500)

_TEE_DESCRIPTION = (
    "Manches courtes / Blanc<br>"
    "Tailles : S, M, L, XL<br>"
    "100 % coton léger (Blanc), 99 % coton, 1 % polyester (gris cendré), "
    "97 % coton, 3 % polyester (gris chiné)<br>"
    "Coutures doubles pour une résistance accrue"
)

_HOODIE_COLORS = ("Blanc", "Noir", "Bleu Marine")
_HOODIE_SIZES = ("S", "M", "L", "XL")

_PHONE_MODELS = (
    "iPhone 16 Plus",
    "iPhone 16",
    "iPhone 16e",
    "iPhone 15",
    "iPhone 14 Pro Max",
    "iPhone 14 Pro",
    "iPhone 14",
    "iPhone 13 Pro Max",
    "iPhone 13 Pro",
    "iPhone 13",
    "iPhone 12 Pro Max",
    "iPhone 12 Pro",
    "iPhone 12",
    "Samsung Galaxy S23 Ultra",
    "Samsung Galaxy S23",
    "Samsung Galaxy S22",
    "Google Pixel 7 Pro",
    "Google Pixel 7",
    "Google Pixel 6",
    "Autre (préciser le modèle en commentaire)",
)

_LAPTOP_MODELS = (
    "MacBook Air 13 pouces",
    "MacBook Air 15 pouces",
    "MacBook Pro 13 pouces",
    "MacBook Pro 15 pouces",
    "MacBook Pro 16 pouces",
    "Dell XPS 13",
    "Dell XPS 15",
    "HP Spectre x360",
    "Lenovo ThinkPad X1 Carbon",
    "Autre (préciser le modèle en commentaire)",
)


def _priced(options: tuple[str, ...], price: str) -> tuple[VariantDefinition, ...]:
    return tuple(VariantDefinition(option=o, price=price) for o in options)


DERIVATIVE_DEFINITIONS: tuple[DerivativeDefinition, ...] = (
    DerivativeDefinition(
        key="plexiglas",
        name="Les Oeuvres sur Plexiglas",
        description=(
            "• Trois formats disponibles<br>"
            "• Acrylique brillant transparent de 3 mm<br>"
            "• Trous pré-percés, entretoises et languettes adhésives disponibles<br>"
            "• Impression en couleur de qualité<br><br>"
            "Remarque : Chaque impression est protégée par un film vert détachable. "
            "Retirez-le avant l’affichage.<br>"
            "À la recherche d’une décoration murale originale ? Le plexiglas met en "
            "valeur les couleurs pour un rendu réaliste et vibrant."
        ),
        template="plexiglas.png",
        placement=PLACEMENTS["plexiglas"],
        variants=(
            VariantDefinition(option="40X30", price="100.00", sku_suffix="40x30"),
            VariantDefinition(option="60X40", price="180.00", sku_suffix="60x40"),
            VariantDefinition(option="90X60", price="250.00", sku_suffix="90x60"),
        ),
        price="100.00",
        collections=("Boutique", "Œuvres plexiglas", "Décorations"),
    ),
    DerivativeDefinition(
        key="tote-bag",
        name="Le Sac fourre-tout Deluxe en coton",
        description=(
            "Toile 100 % coton, 320 g/m²<br>"
            "Dimensions : 38 cm H x 47 cm L x 12 cm P<br>"
            "Longueur des anses : 26 cm"
        ),
        template="tote-bag.png",
        placement=PLACEMENTS["tote-bag"],
        price="30.00",
        collections=("Boutique", "Sacs", "Accessoires"),
    ),
    DerivativeDefinition(
        key="tee-shirt-homme",
        name="Le Tee Shirt HOMME",
        description=_TEE_DESCRIPTION,
        template="tee-shirt-homme.png",
        placement=PLACEMENTS["tee-shirt-homme"],
        variants=_priced(("S", "M", "L", "XL"), "40.00"),
        price="40.00",
        collections=("Boutique", "Vêtements", "Hommes", "Tee-shirts"),
    ),
    DerivativeDefinition(
        key="tee-shirt-femme",
        name="Le Tee Shirt Femme",
        description=_TEE_DESCRIPTION,
        template="tee-shirt-femme.png",
        placement=PLACEMENTS["tee-shirt-femme"],
        variants=_priced(("XS", "S", "M", "L"), "40.00"),
        price="40.00",
        collections=("Boutique", "Vêtements", "Femmes", "Tee-shirts"),
    ),
    DerivativeDefinition(
        key="grand-sac-de-plage",
        name="Le Grand Sac de Plage",
        description="Disponible en Noir ou Blanc",
        template="grand-sac-de-plage.png",
        placement=PLACEMENTS["grand-sac-de-plage"],
        variants=_priced(("Noir", "Blanc"), "45.00"),
        price="45.00",
        collections=("Boutique", "Sacs", "Accessoires"),
    ),
    DerivativeDefinition(
        key="sweatshirt",
        name="Le Sweat Shirt à Capuche Unisexe",
        description=(
            "Mélange léger 80 % coton et 20 % polyester, 280 g/m²<br>"
            "Coupe Regular<br>"
            "Capuche avec cordon de serrage<br>"
            "Poche avant kangourou<br>"
            "Disponible en Blanc, Noir et Bleu Marine<br>"
            "Tailles : S, M, L, XL"
        ),
        template="sweatshirt-bleumarine.png",
        placement=PLACEMENTS["sweatshirt"],
        variants=_priced(
            tuple(f"{c} - {s}" for c in _HOODIE_COLORS for s in _HOODIE_SIZES),
            "75.00",
        ),
        collections=("Boutique", "Vêtements", "Hommes", "Femmes", "Sweatshirts"),
        color_templates=(
            ColorTemplate(color="Blanc", template="sweatshirt-blanc.png"),
            ColorTemplate(color="Noir", template="sweatshirt-noir.png"),
            ColorTemplate(color="Bleu Marine", template="sweatshirt-bleumarine.png"),
        ),
    ),
    DerivativeDefinition(
        key="coque-de-telephone",
        name="Coque de téléphone",
        description=(
            "Coque dérivée de l’œuvre. Prix fixe.<br>"
            "Pour personnaliser, veuillez renseigner votre modèle lors de la commande."
        ),
        template="phone/generic-phone.png",
        placement=PLACEMENTS["coque-de-telephone"],
        variants=_priced(_PHONE_MODELS, "29.99"),
        collections=("Boutique", "Accessoires", "Coques de protection"),
    ),
    DerivativeDefinition(
        key="coque-pc-portable",
        name="Coque de PC Portable",
        description=(
            "Coque dérivée de l’œuvre. Prix fixe.<br>"
            "Matière : Plastique<br>"
            "Étanche<br>"
            "Filtre UV<br>"
            "Facile à poser<br>"
            "Adhésif micro-canaux qui élimine les bulles d’air lorsqu’il est posé<br>"
            "Pour personnaliser, veuillez renseigner votre modèle lors de la commande."
        ),
        template="phone/generic-phone.png",
        placement=DEFAULT_PLACEMENT,
        variants=_priced(_LAPTOP_MODELS, "60.00"),
        collections=("Boutique", "Accessoires", "Coques de protection"),
    ),
)


def get_definition(key: str) -> DerivativeDefinition:
    """Look up a definition by key (raises KeyError)."""
    for definition in DERIVATIVE_DEFINITIONS:
        if definition.key == key:
            return definition
    raise KeyError(key)
