"""
Backend de la tienda Luxury Market.

Catálogo de productos en dos universos ("mode" y "tout"), categorías
gestionadas desde la administración y pedidos por WhatsApp. El
almacenamiento es Postgres si hay una URL configurada y ficheros JSON si no.
"""

from .errors import (
    AuthenticationError,
    CategoryNotFoundError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ReplacementRequiredError,
    StorefrontError,
    ValidationError,
)
from .models import Product, ProductInput, ProductPatch

__all__ = [
    "AuthenticationError",
    "CategoryNotFoundError",
    "ConfigurationError",
    "ConflictError",
    "NotFoundError",
    "ReplacementRequiredError",
    "StorefrontError",
    "ValidationError",
    "Product",
    "ProductInput",
    "ProductPatch",
]
