"""
Repositorios de la tienda.

``open_storage`` construye, a partir del backend elegido al arrancar, los
tres almacenes que usa la aplicación: productos, categorías registradas y
sous-catégories de moda registradas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import FileBackend, SqlBackend, StorageBackend
from ..database import Database
from .base import NameStore, ProductRepository, generate_id, slugify, unique_slug
from .json_file import (
    CATEGORIES_FILE,
    MODE_SUBCATEGORIES_FILE,
    PRODUCTS_FILE,
    JsonNameStore,
    JsonProductRepository,
)
from .postgres import PostgresNameStore, PostgresProductRepository

logger = logging.getLogger(__name__)


@dataclass
class Storage:
    """Almacenes de un backend concreto."""

    products: ProductRepository
    categories: NameStore
    mode_subcategories: NameStore
    database: Optional[Database] = None

    def close(self) -> None:
        if self.database is not None:
            self.database.close()


def open_storage(backend: StorageBackend) -> Storage:
    """
    Crea los repositorios para un backend.

    Args:
        backend: FileBackend o SqlBackend (ver ``config.get_storage_backend``).

    Returns:
        Storage con los tres almacenes.
    """
    if isinstance(backend, SqlBackend):
        database = Database(backend.url)
        return Storage(
            products=PostgresProductRepository(database),
            categories=PostgresNameStore(database, "categories"),
            mode_subcategories=PostgresNameStore(database, "mode_subcategories"),
            database=database,
        )

    if isinstance(backend, FileBackend):
        data_dir = backend.data_dir
        return Storage(
            products=JsonProductRepository(data_dir / PRODUCTS_FILE),
            categories=JsonNameStore(data_dir / CATEGORIES_FILE),
            mode_subcategories=JsonNameStore(data_dir / MODE_SUBCATEGORIES_FILE),
        )

    raise TypeError(f"Backend de almacenamiento no soportado: {backend!r}")


__all__ = [
    "NameStore",
    "ProductRepository",
    "JsonNameStore",
    "JsonProductRepository",
    "PostgresNameStore",
    "PostgresProductRepository",
    "Storage",
    "open_storage",
    "generate_id",
    "slugify",
    "unique_slug",
]
