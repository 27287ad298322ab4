"""
Vista pública del catálogo.

Agrupa los productos de un universo por su categoría de visualización (la
categoría libre pasada por la taxonomía) y, en "mode", añade la
sous-catégorie de ropa para el selector de la sección Vêtements.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .categories.mapper import classify_mode_category, map_universe_category
from .categories.taxonomy import (
    CLOTHING_CATEGORY,
    MODE_CATEGORIES,
    MODE_CLOTHING_SUBCATEGORIES,
    UNIVERSE_CATEGORIES,
    unique_sorted,
)
from .errors import NotFoundError, ValidationError
from .models import UNIVERSES, Product
from .repositories.base import NameStore, ProductRepository

ALL_CLOTHING = "all"
OTHER_CLOTHING = "other"

PRODUCT_NOT_FOUND_MESSAGE = "Produit introuvable."


@dataclass
class CatalogEntry:
    """Producto con su categoría de visualización."""

    product: Product
    display_category: str
    subcategory: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.product.to_dict()
        data["displayCategory"] = self.display_category
        data["subCategory"] = self.subcategory
        return data


@dataclass
class CatalogSection:
    category: str
    entries: List[CatalogEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "products": [entry.to_dict() for entry in self.entries],
        }


def check_universe(universe: str) -> str:
    """
    Raises:
        ValidationError: Si el universo no es "mode" ni "tout".
    """
    if universe not in UNIVERSES:
        raise ValidationError("universe doit être 'mode' ou 'tout'.")
    return universe


def filter_clothing(entries: List[CatalogEntry], selection: str = ALL_CLOTHING) -> List[CatalogEntry]:
    """
    Filtra la ropa según el selector de sous-catégorie.

    Args:
        entries: Entradas del catálogo "mode".
        selection: "all", "other" (ropa sin sous-catégorie) o el nombre de
            una sous-catégorie.

    Returns:
        Entradas de Vêtements que cumplen el filtro.
    """
    clothing = [e for e in entries if e.display_category == CLOTHING_CATEGORY]
    if selection == ALL_CLOTHING:
        return clothing
    if selection == OTHER_CLOTHING:
        return [e for e in clothing if not e.subcategory]
    return [e for e in clothing if e.subcategory == selection]


def available_subcategories(entries: List[CatalogEntry]) -> List[str]:
    """Sous-catégories con algún producto: primero las integradas, en su orden."""
    present = {e.subcategory for e in entries if e.subcategory}
    builtin = [name for name in MODE_CLOTHING_SUBCATEGORIES if name in present]
    extra = unique_sorted(present - set(MODE_CLOTHING_SUBCATEGORIES))
    return builtin + extra


class Catalog:
    """
    Consultas de la tienda pública.

    Args:
        products: Repositorio de productos.
        mode_subcategories: Almacén de sous-catégories registradas, que
            tienen prioridad sobre las reglas integradas al clasificar.
    """

    def __init__(self, products: ProductRepository, mode_subcategories: NameStore):
        self.products = products
        self.mode_subcategories = mode_subcategories

    def get_products(self, universe: Optional[str] = None) -> List[Product]:
        if universe is None:
            return self.products.get_products()
        return self.products.get_products_by_universe(check_universe(universe))

    def get_product(self, slug: str) -> Product:
        """
        Raises:
            NotFoundError: Si no hay producto con ese slug.
        """
        product = self.products.get_product_by_slug(slug)
        if product is None:
            raise NotFoundError(PRODUCT_NOT_FOUND_MESSAGE)
        return product

    def entries(self, universe: str) -> List[CatalogEntry]:
        products = self.get_products(universe)
        if universe != "mode":
            return [CatalogEntry(p, map_universe_category(p.category)) for p in products]

        known = self.mode_subcategories.list_names()
        entries = []
        for product in products:
            classification = classify_mode_category(product.category, known)
            entries.append(
                CatalogEntry(product, classification.category, classification.subcategory)
            )
        return entries

    def sections(
        self,
        universe: str,
        clothing: str = ALL_CLOTHING,
        entries: Optional[List[CatalogEntry]] = None,
    ) -> List[CatalogSection]:
        """
        Productos agrupados por categoría, en el orden de la taxonomía.

        Las secciones vacías no se devuelven. ``clothing`` filtra la sección
        Vêtements (ver ``filter_clothing``).
        """
        if entries is None:
            entries = self.entries(universe)
        order = MODE_CATEGORIES if universe == "mode" else UNIVERSE_CATEGORIES

        by_category: Dict[str, List[CatalogEntry]] = {}
        for entry in entries:
            by_category.setdefault(entry.display_category, []).append(entry)
        if universe == "mode" and CLOTHING_CATEGORY in by_category:
            by_category[CLOTHING_CATEGORY] = filter_clothing(entries, clothing)

        return [
            CatalogSection(category, by_category[category])
            for category in order
            if by_category.get(category)
        ]

    def overview(self, universe: str, clothing: str = ALL_CLOTHING) -> Dict[str, Any]:
        """Respuesta completa de ``/api/catalog/<universe>``."""
        entries = self.entries(universe)
        sections = self.sections(universe, clothing, entries)
        return {
            "universe": universe,
            "count": len(entries),
            "sections": [section.to_dict() for section in sections],
            "subcategories": available_subcategories(entries),
            "hasOtherClothing": any(
                e.display_category == CLOTHING_CATEGORY and not e.subcategory for e in entries
            ),
        }
