"""
Mapeo de categorías en texto libre a la taxonomía de la tienda.

Funciones puras: no leen ni escriben nada. La categoría guardada en el
producto no se toca; sólo se clasifica al mostrar o filtrar.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .taxonomy import (
    CLOTHING_CATEGORY,
    CLOTHING_TAXONOMY,
    MODE_TAXONOMY,
    UNIVERSE_TAXONOMY,
    normalize_text,
)


@dataclass(frozen=True)
class ModeClassification:
    """Categoría de moda y sous-catégorie de ropa inferida (si la hay)."""

    category: str
    subcategory: Optional[str] = None


def map_universe_category(raw_category: str) -> str:
    """Categoría canónica del universo "tout"."""
    return UNIVERSE_TAXONOMY.match(raw_category)


def infer_mode_subcategory(raw_category: str) -> Optional[str]:
    """Sous-catégorie de ropa según las reglas integradas, o None."""
    return CLOTHING_TAXONOMY.match(raw_category)


def match_mode_subcategory(
    raw_category: str,
    known_subcategories: Iterable[str] = (),
) -> Optional[str]:
    """
    Busca la sous-catégorie de un texto libre.

    Las sous-catégories creadas desde la administración tienen prioridad:
    primero se busca una coincidencia exacta (normalizada) en
    ``known_subcategories`` y sólo después se aplican las reglas integradas.

    Args:
        raw_category: Categoría guardada en el producto.
        known_subcategories: Nombres registrados dinámicamente.

    Returns:
        Nombre de la sous-catégorie o None.
    """
    target = normalize_text(raw_category)
    if not target:
        return None

    for name in known_subcategories:
        if normalize_text(name) == target:
            return name.strip()

    return infer_mode_subcategory(raw_category)


def classify_mode_category(
    raw_category: str,
    known_subcategories: Iterable[str] = (),
) -> ModeClassification:
    """
    Clasifica un producto del universo "mode".

    Si se infiere una sous-catégorie, la categoría es siempre "Vêtements".
    """
    subcategory = match_mode_subcategory(raw_category, known_subcategories)
    if subcategory:
        return ModeClassification(CLOTHING_CATEGORY, subcategory)
    return ModeClassification(MODE_TAXONOMY.match(raw_category))


def map_mode_category(raw_category: str) -> str:
    """Categoría canónica del universo "mode"."""
    return classify_mode_category(raw_category).category


def map_category(universe: str, raw_category: str) -> str:
    """Categoría de visualización según el universo del producto."""
    if universe == "mode":
        return map_mode_category(raw_category)
    return map_universe_category(raw_category)
