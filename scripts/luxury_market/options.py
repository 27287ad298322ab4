"""
Opciones de producto: fotos, colores y tallas.

Normaliza las listas de imágenes, el mapa color → fotos y la lista de
colores que el administrador escribe en texto libre.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from .categories.taxonomy import normalize_text

ColorImagesMap = Dict[str, List[str]]

DEFAULT_SWATCH = "#d1d5db"

COLOR_MAP: Dict[str, str] = {
    "noir": "#18181b",
    "blanc": "#f8fafc",
    "gris": "#6b7280",
    "argent": "#cbd5e1",
    "anthracite": "#374151",
    "rouge": "#dc2626",
    "bordeau": "#7f1d1d",
    "bordeaux": "#7f1d1d",
    "bleu": "#2563eb",
    "bleu marine": "#1e3a8a",
    "marine": "#1e3a8a",
    "bleu ciel": "#0ea5e9",
    "vert": "#16a34a",
    "kaki": "#4d7c0f",
    "olive": "#4d7c0f",
    "jaune": "#facc15",
    "orange": "#f97316",
    "rose": "#ec4899",
    "violet": "#7c3aed",
    "beige": "#d6b98b",
    "creme": "#f5f5dc",
    "cremee": "#f5f5dc",
    "marron": "#7c2d12",
    "camel": "#c07a42",
    "or": "#f59e0b",
    "dore": "#f59e0b",
    "cuivre": "#b45309",
    "transparent": "#ffffff",
}

_COLOR_SEPARATORS = re.compile(r"[,;/|]+")
_HEX_COLOR = re.compile(r"^#([a-f0-9]{3}|[a-f0-9]{6})$", re.IGNORECASE)
_CSS_COLOR_FUNCTION = re.compile(r"^(rgb|hsl)a?\(", re.IGNORECASE)


def normalize_color_name(value: str) -> str:
    """Nombre de color comparable: minúsculas y sin acentos."""
    return normalize_text(value)


def parse_color_list(raw: Optional[str]) -> List[str]:
    """
    Separa el campo ``color`` en una lista de colores.

    Separadores: coma, punto y coma, barra y barra vertical. Se conserva el
    orden y se eliminan vacíos y duplicados exactos.
    """
    if not raw:
        return []
    values = [item.strip() for item in _COLOR_SEPARATORS.split(raw)]
    return list(dict.fromkeys(v for v in values if v))


def _color_from_hash(value: str) -> str:
    # h = c + h * 31 en enteros de 32 bits con signo.
    hash_value = 0
    for char in value:
        hash_value = ord(char) + ((hash_value << 5) - hash_value)
        hash_value = (hash_value + 2**31) % 2**32 - 2**31
    hue = abs(hash_value) % 360
    return f"hsl({hue} 65% 50%)"


def color_to_swatch(color: str) -> str:
    """Color CSS para pintar la muestra de un color escrito en texto libre."""
    value = (color or "").strip()
    if not value:
        return DEFAULT_SWATCH

    if _HEX_COLOR.match(value) or _CSS_COLOR_FUNCTION.match(value):
        return value

    key = normalize_color_name(value)
    if key in COLOR_MAP:
        return COLOR_MAP[key]
    return _color_from_hash(key)


def _to_image_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def unique_image_urls(values: Iterable[Any]) -> List[str]:
    """URLs no vacías, sin duplicados, en el orden original."""
    output: List[str] = []
    seen = set()
    for value in values:
        url = _to_image_url(value)
        if not url or url in seen:
            continue
        seen.add(url)
        output.append(url)
    return output


def normalize_product_images(images: Any, fallback: Any = None) -> List[str]:
    """
    Resuelve la lista de fotos de un producto.

    El campo heredado ``image`` (``fallback``) va en primera posición si
    existe; después, las fotos de ``images`` que no estén repetidas.

    Args:
        images: Lista de URLs (u otra cosa, que se ignora).
        fallback: URL de la foto principal heredada.

    Returns:
        Lista de URLs; vacía si no hay ninguna foto utilizable.
    """
    values: List[Any] = [fallback]
    if isinstance(images, (list, tuple)):
        values.extend(images)
    return unique_image_urls(values)


def normalize_color_images_map(value: Any) -> ColorImagesMap:
    """
    Limpia el mapa color → fotos.

    Las claves se recortan y se fusionan si son iguales sin distinguir
    mayúsculas ni acentos (se conserva la primera grafía). Colores sin fotos
    válidas se descartan.
    """
    if not isinstance(value, dict):
        return {}

    output: ColorImagesMap = {}
    keys_by_name: Dict[str, str] = {}

    for raw_color, raw_images in value.items():
        if not isinstance(raw_color, str):
            continue
        color = raw_color.strip()
        if not color or not isinstance(raw_images, (list, tuple)):
            continue

        images = unique_image_urls(raw_images)
        if not images:
            continue

        key = keys_by_name.setdefault(normalize_color_name(color), color)
        output[key] = unique_image_urls(output.get(key, []) + images)

    return output


def get_color_images(color_images: Optional[ColorImagesMap], color: Optional[str]) -> List[str]:
    """Fotos asociadas a un color (comparación sin mayúsculas ni acentos)."""
    if not color_images or not color:
        return []

    target = normalize_color_name(color)
    if not target:
        return []

    for key, images in color_images.items():
        if normalize_color_name(key) == target:
            return unique_image_urls(images)
    return []


def normalize_sizes(value: Any) -> List[str]:
    """Tallas como texto, recortadas, sin vacíos ni duplicados."""
    if not isinstance(value, (list, tuple)):
        return []
    sizes = [str(item).strip() for item in value if item is not None]
    return list(dict.fromkeys(s for s in sizes if s))
