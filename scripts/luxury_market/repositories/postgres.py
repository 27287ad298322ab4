"""
Backend Postgres.

Mismo comportamiento que el backend de ficheros; cada operación sobre una
fila es una sola sentencia y la reasignación de categoría es un único
UPDATE masivo.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from psycopg2 import sql
from psycopg2.extras import Json

from ..database import Database
from ..models import Product, ProductInput, ProductPatch
from ..validators import validate_product, validate_products
from .base import NameStore, ProductRepository, apply_patch, build_product

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = (
    "id",
    "slug",
    "name",
    "price",
    "category",
    "universe",
    "image",
    "images",
    "description",
    "color",
    "color_images",
    "sizes",
)


def parse_json_column(value: Any, default: Any) -> Any:
    """Columna JSONB: ya decodificada por psycopg2 o como texto JSON."""
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return default
    return value


def row_to_record(row: dict) -> dict:
    """Convierte una fila SQL al formato de registro de ``Product``."""
    record = dict(row)
    record["images"] = parse_json_column(row.get("images"), [])
    record["color_images"] = parse_json_column(row.get("color_images"), {})
    record["sizes"] = parse_json_column(row.get("sizes"), [])
    return record


def product_to_params(product: Product) -> dict:
    """Parámetros de INSERT/UPDATE para un producto."""
    return {
        "id": product.id,
        "slug": product.slug,
        "name": product.name,
        "price": product.price,
        "category": product.category,
        "universe": product.universe,
        "image": product.image,
        "images": Json(product.images),
        "description": product.description,
        "color": product.color,
        "color_images": Json(product.color_images) if product.color_images else None,
        "sizes": Json(product.sizes) if product.sizes else None,
    }


class PostgresProductRepository(ProductRepository):
    """Productos en la tabla ``products``."""

    def __init__(self, database: Database):
        self.db = database

    def _fetch(self, query: str, params: tuple = ()) -> List[dict]:
        self.db.ensure_schema()
        with self.db.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def get_products(self) -> List[Product]:
        rows = self._fetch("SELECT * FROM products ORDER BY id")
        return validate_products(row_to_record(r) for r in rows)

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        rows = self._fetch("SELECT * FROM products WHERE id = %s", (product_id,))
        return validate_product(row_to_record(rows[0])) if rows else None

    def get_product_by_slug(self, slug: str) -> Optional[Product]:
        rows = self._fetch("SELECT * FROM products WHERE slug = %s", (slug,))
        return validate_product(row_to_record(rows[0])) if rows else None

    def _slugs(self, exclude_id: Optional[str] = None) -> set:
        rows = self._fetch("SELECT id, slug FROM products")
        return {r["slug"] for r in rows if r["id"] != exclude_id}

    def add_product(self, product_input: ProductInput) -> Product:
        product = build_product(product_input, self._slugs())

        columns = sql.SQL(", ").join(sql.Identifier(c) for c in PRODUCT_COLUMNS)
        values = sql.SQL(", ").join(sql.Placeholder(c) for c in PRODUCT_COLUMNS)
        query = sql.SQL("INSERT INTO products ({}) VALUES ({})").format(columns, values)

        self.db.ensure_schema()
        with self.db.cursor() as cur:
            cur.execute(query, product_to_params(product))

        logger.info(f"Producto creado: {product.id} ({product.slug})")
        return product

    def update_product(self, product_id: str, patch: ProductPatch) -> Optional[Product]:
        existing = self.get_product_by_id(product_id)
        if existing is None:
            return None

        updated = apply_patch(existing, patch, self._slugs(exclude_id=product_id))

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder(c))
            for c in PRODUCT_COLUMNS
            if c != "id"
        )
        query = sql.SQL("UPDATE products SET {} WHERE id = %(id)s").format(assignments)

        with self.db.cursor() as cur:
            cur.execute(query, product_to_params(updated))

        logger.info(f"Producto actualizado: {updated.id} ({updated.slug})")
        return updated

    def delete_product(self, product_id: str) -> bool:
        rows = self._fetch("DELETE FROM products WHERE id = %s RETURNING id", (product_id,))
        if rows:
            logger.info(f"Producto eliminado: {product_id}")
        return bool(rows)

    def count_products_by_category(self, category: str) -> int:
        rows = self._fetch(
            "SELECT COUNT(*)::int AS count FROM products WHERE category = %s",
            (category,),
        )
        return int(rows[0]["count"]) if rows else 0

    def replace_category(self, old_category: str, new_category: str) -> int:
        if old_category == new_category:
            return 0

        rows = self._fetch(
            "UPDATE products SET category = %s WHERE category = %s RETURNING id",
            (new_category, old_category),
        )
        if rows:
            logger.info(
                f"Categoría reasignada: {old_category} -> {new_category} ({len(rows)})"
            )
        return len(rows)


class PostgresNameStore(NameStore):
    """Nombres registrados en una tabla ``(name TEXT PRIMARY KEY)``."""

    def __init__(self, database: Database, table: str):
        self.db = database
        self.table = sql.Identifier(table)

    def list_names(self) -> List[str]:
        self.db.ensure_schema()
        with self.db.cursor() as cur:
            cur.execute(sql.SQL("SELECT name FROM {} ORDER BY name").format(self.table))
            rows = cur.fetchall()
        return [str(r["name"]) for r in rows]

    def add_name(self, name: str) -> None:
        self.db.ensure_schema()
        with self.db.cursor() as cur:
            cur.execute(
                sql.SQL("INSERT INTO {} (name) VALUES (%s) ON CONFLICT (name) DO NOTHING").format(
                    self.table
                ),
                (name,),
            )

    def remove_name(self, name: str) -> None:
        self.db.ensure_schema()
        with self.db.cursor() as cur:
            cur.execute(sql.SQL("DELETE FROM {} WHERE name = %s").format(self.table), (name,))
