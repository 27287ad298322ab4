"""
Backend de ficheros JSON.

Modo de desarrollo / respaldo: cada fichero es un array JSON indentado que se
reescribe completo en cada cambio. Sin bloqueos: dos escrituras simultáneas
pueden pisarse (gana la última).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from ..categories.taxonomy import unique_sorted
from ..models import Product, ProductInput, ProductPatch
from ..validators import validate_product, validate_products
from .base import NameStore, ProductRepository, apply_patch, build_product

logger = logging.getLogger(__name__)

PRODUCTS_FILE = "products.json"
CATEGORIES_FILE = "categories.json"
MODE_SUBCATEGORIES_FILE = "mode-subcategories.json"


def read_json_array(path: Path) -> List[Any]:
    """
    Lee un array JSON.

    Cualquier fallo de lectura (fichero ausente, ilegible o JSON mal formado)
    se trata como "sin datos" y devuelve una lista vacía.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug(f"Fichero no encontrado, se asume vacío: {path}")
        return []
    except (OSError, ValueError) as e:
        logger.warning(f"No se pudo leer {path}, se asume vacío: {e}")
        return []

    if not isinstance(data, list):
        logger.warning(f"{path} no contiene un array JSON, se asume vacío")
        return []
    return data


def write_json_array(path: Path, values: List[Any]) -> None:
    """Reescribe el fichero completo con el array indentado."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(values, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _record_id(record: Any) -> Optional[str]:
    return record.get("id") if isinstance(record, dict) else None


def _record_slugs(records: List[Any], exclude_id: Optional[str] = None) -> set:
    return {
        record.get("slug")
        for record in records
        if isinstance(record, dict) and record.get("id") != exclude_id
    }


class JsonProductRepository(ProductRepository):
    """
    Productos guardados en ``<data_dir>/products.json``.

    Las lecturas devuelven sólo los registros válidos; las escrituras
    trabajan sobre los registros crudos y conservan intactos los que no
    validan.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_records(self) -> List[Any]:
        return read_json_array(self.path)

    def _write_records(self, records: List[Any]) -> None:
        write_json_array(self.path, records)

    def _load(self) -> List[Product]:
        return validate_products(self._read_records())

    def get_products(self) -> List[Product]:
        return sorted(self._load(), key=lambda p: p.id)

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        return next((p for p in self._load() if p.id == product_id), None)

    def get_product_by_slug(self, slug: str) -> Optional[Product]:
        return next((p for p in self._load() if p.slug == slug), None)

    def add_product(self, product_input: ProductInput) -> Product:
        records = self._read_records()
        product = build_product(product_input, _record_slugs(records))
        records.append(product.to_dict())
        self._write_records(records)
        logger.info(f"Producto creado: {product.id} ({product.slug})")
        return product

    def update_product(self, product_id: str, patch: ProductPatch) -> Optional[Product]:
        records = self._read_records()
        index = next((i for i, r in enumerate(records) if _record_id(r) == product_id), None)
        if index is None:
            return None

        existing = validate_product(records[index])
        if existing is None:
            return None

        updated = apply_patch(existing, patch, _record_slugs(records, exclude_id=product_id))
        records[index] = updated.to_dict()
        self._write_records(records)
        logger.info(f"Producto actualizado: {updated.id} ({updated.slug})")
        return updated

    def delete_product(self, product_id: str) -> bool:
        records = self._read_records()
        remaining = [r for r in records if _record_id(r) != product_id]
        if len(remaining) == len(records):
            return False
        self._write_records(remaining)
        logger.info(f"Producto eliminado: {product_id}")
        return True

    def count_products_by_category(self, category: str) -> int:
        return sum(
            1
            for record in self._read_records()
            if isinstance(record, dict) and record.get("category") == category
        )

    def replace_category(self, old_category: str, new_category: str) -> int:
        if old_category == new_category:
            return 0

        records = self._read_records()
        count = 0
        for record in records:
            if isinstance(record, dict) and record.get("category") == old_category:
                record["category"] = new_category
                count += 1

        if count > 0:
            self._write_records(records)
            logger.info(f"Categoría reasignada: {old_category} -> {new_category} ({count})")
        return count


class JsonNameStore(NameStore):
    """Nombres registrados en un array JSON de strings."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_names(self) -> List[str]:
        values = (str(v).strip() for v in read_json_array(self.path))
        return list(dict.fromkeys(v for v in values if v))

    def _save(self, names: List[str]) -> None:
        write_json_array(self.path, unique_sorted(names))

    def add_name(self, name: str) -> None:
        names = self.list_names()
        if name in names:
            return
        names.append(name)
        self._save(names)

    def remove_name(self, name: str) -> None:
        names = self.list_names()
        if name not in names:
            return
        self._save([n for n in names if n != name])
