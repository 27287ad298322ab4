"""
Modelos de datos de la tienda.

Los modelos pydantic validan todo lo que entra desde fuera (cuerpo de una
petición, fichero JSON, fila SQL); los dataclasses son resultados internos
que se devuelven tal cual como JSON.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .options import (
    ColorImagesMap,
    normalize_color_images_map,
    normalize_product_images,
    normalize_sizes,
)

Universe = Literal["mode", "tout"]
UNIVERSES = ("mode", "tout")

IMAGE_REQUIRED_MESSAGE = "Au moins une image produit est requise."


def _image_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


class Product(BaseModel):
    """
    Producto tal como se guarda y se devuelve.

    Invariante: ``images`` nunca está vacío e ``images[0] == image``.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    name: str
    price: int = Field(ge=0)
    category: str
    universe: Universe
    image: str = ""
    images: List[str] = Field(default_factory=list)
    description: str = ""
    color: Optional[str] = None
    color_images: ColorImagesMap = Field(default_factory=dict, alias="colorImages")
    sizes: List[str] = Field(default_factory=list)

    check_images = field_validator("images", mode="before")(_image_list)
    check_color = field_validator("color", mode="before")(_blank_to_none)
    check_color_images = field_validator("color_images", mode="before")(
        normalize_color_images_map
    )
    check_sizes = field_validator("sizes", mode="before")(normalize_sizes)

    @model_validator(mode="after")
    def primary_image_first(self) -> "Product":
        images = normalize_product_images(self.images, self.image)
        if not images:
            raise ValueError(IMAGE_REQUIRED_MESSAGE)
        self.images = images
        self.image = images[0]
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para JSON (``colorImages`` en camelCase)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ProductInput(BaseModel):
    """Datos para crear un producto (sin ``id`` ni ``slug``)."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    price: int = Field(ge=0, strict=True)
    category: str = Field(min_length=1)
    universe: Universe
    image: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    description: str = Field(min_length=1)
    color: Optional[str] = None
    color_images: ColorImagesMap = Field(default_factory=dict, alias="colorImages")
    sizes: List[str] = Field(default_factory=list)

    check_images = field_validator("images", mode="before")(_image_list)
    check_color = field_validator("color", mode="before")(_blank_to_none)
    check_color_images = field_validator("color_images", mode="before")(
        normalize_color_images_map
    )
    check_sizes = field_validator("sizes", mode="before")(normalize_sizes)

    def resolved_images(self) -> List[str]:
        """Fotos finales: ``image`` primero y después ``images``."""
        return normalize_product_images(self.images, self.image)


class ProductPatch(BaseModel):
    """
    Cambios parciales sobre un producto.

    Sólo se aplican los campos presentes en la petición
    (``model_fields_set``). Un ``color`` vacío borra el color.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    price: Optional[int] = Field(default=None, ge=0, strict=True)
    category: Optional[str] = Field(default=None, min_length=1)
    universe: Optional[Universe] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    description: Optional[str] = None
    color: Optional[str] = None
    color_images: Optional[ColorImagesMap] = Field(default=None, alias="colorImages")
    sizes: Optional[List[str]] = None

    check_images = field_validator("images", mode="before")(_image_list)
    check_color = field_validator("color", mode="before")(_blank_to_none)
    check_color_images = field_validator("color_images", mode="before")(
        normalize_color_images_map
    )
    check_sizes = field_validator("sizes", mode="before")(normalize_sizes)

    @model_validator(mode="after")
    def resolve_images(self) -> "ProductPatch":
        if "image" in self.model_fields_set or "images" in self.model_fields_set:
            images = normalize_product_images(self.images, self.image)
            if not images:
                raise ValueError(IMAGE_REQUIRED_MESSAGE)
            self.image = images[0]
            self.images = images
        return self

    def changes(self) -> Dict[str, Any]:
        """Campos enviados, con nombres de atributo (no alias)."""
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        # Si llegó una sola de las dos, la otra ya quedó resuelta.
        if "image" in changes or "images" in changes:
            changes["image"] = self.image
            changes["images"] = self.images
        return changes


@dataclass
class CategoryInfo:
    """Categoría con el número de productos que la usan."""

    name: str
    count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CreateResult:
    created: bool
    name: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DeleteResult:
    reassigned: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RenameResult:
    reassigned: int
    merged: bool

    def to_dict(self) -> dict:
        return asdict(self)
