"""
Registro de categorías y sous-catégories de moda.

Gestiona los nombres creados desde la administración además de la taxonomía
integrada, y vigila que renombrar o borrar no deje productos huérfanos.
Los pasos (reasignar productos, quitar el nombre) no son transaccionales:
si el proceso se corta entre ambos, el nombre queda registrado con cero
productos y se puede volver a borrar.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from ..errors import (
    CategoryNotFoundError,
    ConflictError,
    ReplacementRequiredError,
    ValidationError,
)
from ..models import CategoryInfo, CreateResult, DeleteResult, Product, RenameResult
from .mapper import match_mode_subcategory
from .taxonomy import (
    CLOTHING_CATEGORY,
    MODE_CATEGORIES,
    MODE_CLOTHING_SUBCATEGORIES,
    UNIVERSE_CATEGORIES,
    unique_sorted,
)

if TYPE_CHECKING:
    from ..repositories.base import NameStore, ProductRepository

logger = logging.getLogger(__name__)


class NameRegistry:
    """
    Lógica común de los dos registros.

    Las subclases definen los nombres integrados, qué nombres se observan en
    los productos y qué pasa al borrar sin categoría de reemplazo.
    """

    BUILTIN_NAMES: Tuple[str, ...] = ()

    MSG_NAME_REQUIRED = "Nom de catégorie requis."
    MSG_NEXT_NAME_REQUIRED = "Nouveau nom de catégorie requis."
    MSG_NOT_FOUND = "Catégorie introuvable."
    MSG_SAME_REPLACEMENT = "La catégorie de remplacement doit être différente."
    MSG_REPLACEMENT_REQUIRED = (
        "Cette catégorie contient des produits. Choisir une catégorie de remplacement."
    )

    def __init__(self, store: NameStore, products: ProductRepository):
        """
        Args:
            store: NameStore con los nombres registrados.
            products: ProductRepository para contar y reasignar productos.
        """
        self.store = store
        self.products = products

    # Hooks

    def observed_names(self, products: List[Product], registered: List[str]) -> Iterable[str]:
        return ()

    def check_new_name(self, name: str, renaming: bool) -> None:
        pass

    def default_replacement(self, name: str) -> Optional[str]:
        """Reemplazo cuando no se indica ninguno (None = obligatorio)."""
        return None

    def register_replacement(self, replacement: str) -> None:
        self.create(replacement)

    # Operaciones

    def names(self) -> List[str]:
        """Registrados ∪ usados por productos ∪ integrados, ordenados."""
        registered = self.store.list_names()
        observed = self.observed_names(self.products.get_products(), registered)
        return unique_sorted([*registered, *observed, *self.BUILTIN_NAMES])

    def infos(self) -> List[CategoryInfo]:
        """Nombres con el número de productos que usan exactamente ese nombre."""
        counts = {}
        for product in self.products.get_products():
            counts[product.category] = counts.get(product.category, 0) + 1
        return [CategoryInfo(name=name, count=counts.get(name, 0)) for name in self.names()]

    def create(self, raw_name: str) -> CreateResult:
        name = (raw_name or "").strip()
        if not name:
            raise ValidationError(self.MSG_NAME_REQUIRED)
        self.check_new_name(name, renaming=False)

        if name in self.names():
            return CreateResult(created=False, name=name)

        self.store.add_name(name)
        logger.info(f"Nombre registrado: {name}")
        return CreateResult(created=True, name=name)

    def delete(self, raw_name: str, raw_replacement: Optional[str] = None) -> DeleteResult:
        name = (raw_name or "").strip()
        replacement = (raw_replacement or "").strip()

        if not name:
            raise ValidationError(self.MSG_NAME_REQUIRED)
        if replacement and replacement == name:
            raise ValidationError(self.MSG_SAME_REPLACEMENT)

        usage_count = self.products.count_products_by_category(name)
        reassigned = 0

        if usage_count > 0:
            if not replacement:
                replacement = self.default_replacement(name) or ""
            if not replacement:
                raise ReplacementRequiredError(self.MSG_REPLACEMENT_REQUIRED)
            self.register_replacement(replacement)
            reassigned = self.products.replace_category(name, replacement)

        self.store.remove_name(name)
        logger.info(f"Nombre eliminado: {name} ({reassigned} productos reasignados)")
        return DeleteResult(reassigned=reassigned)

    def rename(self, raw_name: str, raw_next_name: str) -> RenameResult:
        name = (raw_name or "").strip()
        next_name = (raw_next_name or "").strip()

        if not name:
            raise ValidationError(self.MSG_NAME_REQUIRED)
        if not next_name:
            raise ValidationError(self.MSG_NEXT_NAME_REQUIRED)

        existing = self.names()
        if name not in existing:
            raise CategoryNotFoundError(self.MSG_NOT_FOUND)
        if name == next_name:
            return RenameResult(reassigned=0, merged=False)
        self.check_new_name(next_name, renaming=True)

        merged = next_name in existing
        self.create(next_name)
        reassigned = self.products.replace_category(name, next_name)
        self.store.remove_name(name)

        logger.info(f"Renombrado: {name} -> {next_name} ({reassigned} productos, fusión={merged})")
        return RenameResult(reassigned=reassigned, merged=merged)


class CategoryRegistry(NameRegistry):
    """Categorías de producto (todos los universos)."""

    BUILTIN_NAMES = MODE_CATEGORIES + MODE_CLOTHING_SUBCATEGORIES + UNIVERSE_CATEGORIES

    def observed_names(self, products: List[Product], registered: List[str]) -> Iterable[str]:
        return [p.category for p in products]

    def get_categories(self) -> List[str]:
        return self.names()

    def get_category_infos(self) -> List[CategoryInfo]:
        return self.infos()

    def create_category(self, name: str) -> CreateResult:
        return self.create(name)

    def delete_category(self, name: str, replacement: Optional[str] = None) -> DeleteResult:
        return self.delete(name, replacement)

    def rename_category(self, name: str, next_name: str) -> RenameResult:
        return self.rename(name, next_name)


class ModeSubcategoryRegistry(NameRegistry):
    """
    Sous-catégories de "Vêtements" en el universo mode.

    Al borrar una sous-catégorie con productos y sin reemplazo, los productos
    pasan a "Vêtements" en lugar de bloquear el borrado.
    """

    BUILTIN_NAMES = MODE_CLOTHING_SUBCATEGORIES

    MSG_NAME_REQUIRED = "Nom de sous-catégorie requis."
    MSG_NEXT_NAME_REQUIRED = "Nouveau nom de sous-catégorie requis."
    MSG_NOT_FOUND = "Sous-catégorie introuvable."
    MSG_SAME_REPLACEMENT = "La sous-catégorie de remplacement doit être différente."
    MSG_REPLACEMENT_REQUIRED = (
        "Cette sous-catégorie contient des produits. Choisir une sous-catégorie de remplacement."
    )
    MSG_RESERVED = "Ce nom est déjà utilisé par une catégorie mode principale."

    def observed_names(self, products: List[Product], registered: List[str]) -> Iterable[str]:
        return [
            p.category
            for p in products
            if p.universe == "mode"
            and p.category.strip() not in MODE_CATEGORIES
            and match_mode_subcategory(p.category, registered)
        ]

    def check_new_name(self, name: str, renaming: bool) -> None:
        if name in MODE_CATEGORIES:
            if renaming:
                raise ConflictError(self.MSG_RESERVED)
            raise ValidationError(self.MSG_RESERVED)

    def default_replacement(self, name: str) -> Optional[str]:
        return CLOTHING_CATEGORY

    def register_replacement(self, replacement: str) -> None:
        if replacement in MODE_CATEGORIES:
            return
        self.create(replacement)

    def get_mode_subcategories(self) -> List[str]:
        return self.names()

    def get_mode_subcategory_infos(self) -> List[CategoryInfo]:
        return self.infos()

    def create_mode_subcategory(self, name: str) -> CreateResult:
        return self.create(name)

    def delete_mode_subcategory(
        self, name: str, replacement: Optional[str] = None
    ) -> DeleteResult:
        return self.delete(name, replacement)

    def rename_mode_subcategory(self, name: str, next_name: str) -> RenameResult:
        return self.rename(name, next_name)
