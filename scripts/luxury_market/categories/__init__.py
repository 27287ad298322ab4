"""
Módulo de gestión de categorías y taxonomía de la tienda.

Proporciona el mapeo de texto libre a la taxonomía cerrada. Los registros de
categorías creadas desde la administración están en ``registry`` y se
importan desde allí: dependen de ``models``, que a su vez usa este paquete.
"""

from .mapper import (
    ModeClassification,
    classify_mode_category,
    infer_mode_subcategory,
    map_category,
    map_mode_category,
    map_universe_category,
    match_mode_subcategory,
)
from .taxonomy import (
    CLOTHING_CATEGORY,
    MODE_CATEGORIES,
    MODE_CLOTHING_SUBCATEGORIES,
    UNIVERSE_CATEGORIES,
    normalize_text,
)

__all__ = [
    "CLOTHING_CATEGORY",
    "MODE_CATEGORIES",
    "MODE_CLOTHING_SUBCATEGORIES",
    "UNIVERSE_CATEGORIES",
    "ModeClassification",
    "classify_mode_category",
    "infer_mode_subcategory",
    "map_category",
    "map_mode_category",
    "map_universe_category",
    "match_mode_subcategory",
    "normalize_text",
]
