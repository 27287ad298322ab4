"""
Validación de datos en las fronteras de la aplicación.

Cuerpos de petición, registros del fichero JSON y filas SQL pasan por aquí
antes de convertirse en modelos.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

import pydantic

from .errors import ValidationError
from .models import Product, ProductInput, ProductPatch

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = (
    "Champs requis : name, price, category, universe, image, description."
)

FIELD_LABELS = {"color_images": "colorImages"}


def format_validation_error(exc: pydantic.ValidationError) -> str:
    """
    Convierte un error de pydantic en un mensaje legible.

    Los errores lanzados desde nuestros validadores (``ValueError``) ya traen
    un mensaje en francés y se devuelven tal cual.
    """
    errors = exc.errors()
    if not errors:
        return "Données invalides."

    for error in errors:
        ctx_error = (error.get("ctx") or {}).get("error")
        if error.get("type") == "value_error" and ctx_error is not None:
            return str(ctx_error)

    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    field = FIELD_LABELS.get(location.split(".")[0], location)
    if first.get("type") == "missing":
        return REQUIRED_FIELDS_MESSAGE
    if field == "universe":
        return "universe doit être 'mode' ou 'tout'."
    return f"Champ invalide : {field}."


def _as_dict(body: Any) -> dict:
    if not isinstance(body, dict):
        raise ValidationError("Corps de requête invalide.")
    return body


def parse_product_input(body: Any) -> ProductInput:
    """
    Valida el cuerpo de creación de producto.

    Raises:
        ValidationError: Si falta un campo obligatorio o es inválido.
    """
    try:
        return ProductInput.model_validate(_as_dict(body))
    except pydantic.ValidationError as exc:
        raise ValidationError(format_validation_error(exc)) from exc


def parse_product_patch(body: Any) -> ProductPatch:
    """
    Valida el cuerpo de modificación de producto.

    Raises:
        ValidationError: Si algún campo enviado es inválido.
    """
    try:
        return ProductPatch.model_validate(_as_dict(body))
    except pydantic.ValidationError as exc:
        raise ValidationError(format_validation_error(exc)) from exc


def parse_name(body: Any, field: str = "name") -> str:
    """Nombre recortado de un cuerpo ``{"name": ...}`` (vacío si no hay)."""
    if not isinstance(body, dict) or body.get(field) is None:
        return ""
    return str(body[field]).strip()


def parse_optional_name(body: Any, field: str) -> Optional[str]:
    """Como ``parse_name`` pero None si el campo no viene."""
    if not isinstance(body, dict) or body.get(field) is None:
        return None
    return str(body[field]).strip()


def validate_product(record: Any) -> Optional[Product]:
    """
    Valida un producto leído del almacenamiento.

    Args:
        record: Diccionario del fichero JSON o fila SQL.

    Returns:
        Producto validado o None si no es válido.
    """
    try:
        return Product.model_validate(record)
    except pydantic.ValidationError as exc:
        record_id = record.get("id") if isinstance(record, dict) else None
        logger.warning(
            f"Producto descartado ({record_id}): {format_validation_error(exc)}"
        )
        return None


def validate_products(records: Iterable[Any]) -> List[Product]:
    """
    Valida una lista de productos, descartando los inválidos.

    Args:
        records: Registros crudos.

    Returns:
        Lista de productos válidos.
    """
    valid = []
    discarded = 0

    for record in records:
        product = validate_product(record)
        if product is not None:
            valid.append(product)
        else:
            discarded += 1

    if discarded > 0:
        logger.info(f"Productos descartados por validación: {discarded}")

    return valid
