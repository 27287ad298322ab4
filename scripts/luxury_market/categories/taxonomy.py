"""
Taxonomía cerrada de categorías de la tienda.

Define las categorías canónicas de cada universo y las reglas ordenadas de
palabras clave con las que se clasifica el texto libre de un producto.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

UNIVERSE_CATEGORIES: Tuple[str, ...] = (
    "Electronique",
    "Electromenager",
    "Accessoires maison",
    "Accessoires & divers",
)

MODE_CATEGORIES: Tuple[str, ...] = (
    "Vêtements",
    "Chaussures",
    "Maroquinerie",
    "Accessoires",
    "Mode femme",
)

MODE_CLOTHING_SUBCATEGORIES: Tuple[str, ...] = (
    "Tshirt",
    "Polo",
    "Chemise",
    "Pull",
    "Veste",
    "Jean",
    "Pantalon",
    "Short",
    "Robe",
    "Jupe",
    "Ensemble",
)

CLOTHING_CATEGORY = "Vêtements"
UNIVERSE_DEFAULT = "Accessoires & divers"
MODE_DEFAULT = "Accessoires"


def normalize_text(value: str) -> str:
    """Minúsculas, sin acentos y sin espacios en los extremos."""
    text = unicodedata.normalize("NFD", (value or "").lower())
    text = "".join(c for c in text if not unicodedata.combining(c))
    return text.strip()


def collation_key(value: str) -> Tuple[str, str]:
    """Orden alfabético que ignora acentos y mayúsculas ("Électro" junto a "Electro")."""
    return (normalize_text(value), value)


def unique_sorted(values: Iterable[str]) -> List[str]:
    """Nombres recortados, sin vacíos ni duplicados, en orden alfabético."""
    cleaned = {v.strip() for v in values if v and v.strip()}
    return sorted(cleaned, key=collation_key)


@dataclass(frozen=True)
class TaxonomyRule:
    """Regla de clasificación: nombre canónico y palabras clave normalizadas."""

    name: str
    keywords: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, normalized: str) -> bool:
        """True si alguna palabra clave aparece en el texto normalizado."""
        return any(keyword in normalized for keyword in self.keywords)


class Taxonomy:
    """
    Lista ordenada de reglas: gana la primera que coincide.

    Si ninguna coincide se devuelve ``default`` (que puede ser None).
    """

    def __init__(self, rules: List[TaxonomyRule], default: Optional[str] = None):
        self.rules = list(rules)
        self.default = default

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(rule.name for rule in self.rules)

    def match(self, text: str) -> Optional[str]:
        """
        Clasifica un texto libre.

        Args:
            text: Texto tal cual lo escribió el administrador.

        Returns:
            Nombre canónico de la primera regla que coincide o el default.
        """
        normalized = normalize_text(text)
        for rule in self.rules:
            if rule.matches(normalized):
                return rule.name
        return self.default


UNIVERSE_TAXONOMY = Taxonomy(
    [
        TaxonomyRule("Electromenager", ("electromenager", "electro menager")),
        TaxonomyRule("Electronique", ("luminaire", "electronique")),
        TaxonomyRule("Accessoires maison", ("decoration", "cuisine", "accessoire maison")),
    ],
    default=UNIVERSE_DEFAULT,
)

MODE_TAXONOMY = Taxonomy(
    [
        TaxonomyRule("Vêtements", ("vetement",)),
        TaxonomyRule("Chaussures", ("chaussure",)),
        TaxonomyRule("Maroquinerie", ("maroquinerie",)),
        TaxonomyRule("Mode femme", ("mode femme", "modd femme")),
    ],
    default=MODE_DEFAULT,
)

# Sin default: si no hay coincidencia no hay sous-catégorie.
CLOTHING_TAXONOMY = Taxonomy(
    [
        TaxonomyRule(
            "Tshirt",
            ("t-shirt", "tshirt", "t shirt", "tee-shirt", "tee shirt", "teeshirt"),
        ),
        TaxonomyRule("Polo", ("polo",)),
        TaxonomyRule("Chemise", ("chemise",)),
        TaxonomyRule("Pull", ("pull", "sweat", "hoodie", "gilet")),
        TaxonomyRule("Veste", ("veste", "blouson", "manteau", "doudoune")),
        TaxonomyRule("Jean", ("jean",)),
        TaxonomyRule("Pantalon", ("pantalon", "jogging", "chino")),
        TaxonomyRule("Short", ("short", "bermuda")),
        TaxonomyRule("Robe", ("robe",)),
        TaxonomyRule("Jupe", ("jupe",)),
        TaxonomyRule("Ensemble", ("ensemble", "survetement")),
    ]
)
