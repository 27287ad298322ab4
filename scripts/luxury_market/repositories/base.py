"""
Contrato común de los repositorios de productos y de nombres.

Cada backend (ficheros JSON, Postgres) extiende estas clases; la lógica que
debe ser idéntica en ambos (slug, id, fusión de cambios) vive aquí.
"""

from __future__ import annotations

import random
import re
import time
from abc import ABC, abstractmethod
from typing import Container, List, Optional

import pydantic

from ..categories.taxonomy import normalize_text
from ..errors import ValidationError
from ..models import IMAGE_REQUIRED_MESSAGE, Product, ProductInput, ProductPatch
from ..validators import format_validation_error

DEFAULT_SLUG = "produit"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    Genera un slug apto para URL.

    Minúsculas, sin acentos, cada tramo no alfanumérico pasa a ``-`` y se
    eliminan los guiones de los extremos.
    """
    slug = _NON_ALNUM.sub("-", normalize_text(name)).strip("-")
    return slug or DEFAULT_SLUG


def unique_slug(name: str, taken: Container[str]) -> str:
    """
    Slug de ``name`` que no esté en ``taken``.

    Si el slug base ya existe se prueba ``base-1``, ``base-2``...
    """
    base = slugify(name)
    slug = base
    suffix = 0
    while slug in taken:
        suffix += 1
        slug = f"{base}-{suffix}"
    return slug


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if value == 0:
            break
    return "".join(reversed(digits))


def generate_id() -> str:
    """Id opaco: milisegundos en base 36 seguidos de un sufijo aleatorio."""
    millis = int(time.time() * 1000)
    return _to_base36(millis) + _to_base36(random.getrandbits(52))


def build_product(product_input: ProductInput, taken_slugs: Container[str]) -> Product:
    """
    Construye el registro completo de un producto nuevo.

    Raises:
        ValidationError: Si no hay ninguna foto utilizable.
    """
    images = product_input.resolved_images()
    if not images:
        raise ValidationError(IMAGE_REQUIRED_MESSAGE)

    data = product_input.model_dump()
    data.update(
        id=generate_id(),
        slug=unique_slug(product_input.name, taken_slugs),
        image=images[0],
        images=images,
    )
    return _to_product(data)


def apply_patch(existing: Product, patch: ProductPatch, taken_slugs: Container[str]) -> Product:
    """
    Aplica cambios parciales a un producto.

    Si cambia el nombre se regenera el slug; ``taken_slugs`` no debe incluir
    el slug del propio producto.
    """
    changes = patch.changes()
    data = existing.model_dump()
    data.update(changes)

    new_name = changes.get("name")
    if new_name and new_name != existing.name:
        data["slug"] = unique_slug(new_name, taken_slugs)

    return _to_product(data)


def _to_product(data: dict) -> Product:
    try:
        return Product.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(format_validation_error(exc)) from exc


class ProductRepository(ABC):
    """
    Repositorio de productos.

    Las implementaciones deben comportarse igual: mismos slugs, mismos ids,
    mismos valores de retorno.
    """

    @abstractmethod
    def get_products(self) -> List[Product]:
        """Todos los productos, ordenados por id."""
        pass

    def get_products_by_universe(self, universe: str) -> List[Product]:
        """Productos de un universo ("mode" o "tout")."""
        return [p for p in self.get_products() if p.universe == universe]

    @abstractmethod
    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    def get_product_by_slug(self, slug: str) -> Optional[Product]:
        pass

    @abstractmethod
    def add_product(self, product_input: ProductInput) -> Product:
        """
        Crea un producto.

        Args:
            product_input: Datos validados del producto.

        Returns:
            Producto guardado, con ``id`` y ``slug`` generados.

        Raises:
            ValidationError: Si no hay ninguna foto.
        """
        pass

    @abstractmethod
    def update_product(self, product_id: str, patch: ProductPatch) -> Optional[Product]:
        """
        Modifica un producto.

        Returns:
            Producto actualizado o None si el id no existe.
        """
        pass

    @abstractmethod
    def delete_product(self, product_id: str) -> bool:
        """True si se borró un producto, False si no existía."""
        pass

    @abstractmethod
    def count_products_by_category(self, category: str) -> int:
        """Número de productos cuya categoría es exactamente ``category``."""
        pass

    @abstractmethod
    def replace_category(self, old_category: str, new_category: str) -> int:
        """
        Reasigna todos los productos de ``old_category`` a ``new_category``.

        Returns:
            Número de productos modificados (0 si ambas son iguales).
        """
        pass


class NameStore(ABC):
    """Lista persistida de nombres (categorías o sous-catégories registradas)."""

    @abstractmethod
    def list_names(self) -> List[str]:
        pass

    @abstractmethod
    def add_name(self, name: str) -> None:
        pass

    @abstractmethod
    def remove_name(self, name: str) -> None:
        pass
