"""
Errores de dominio de la tienda.

Cada error lleva el código HTTP con el que la capa web lo expone, para que
los handlers no tengan que adivinar el estado a partir del mensaje.
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Error base de la tienda."""

    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    """Dato obligatorio ausente o inválido."""

    http_status = 400


class NotFoundError(StorefrontError):
    """Producto inexistente."""

    http_status = 404


class CategoryNotFoundError(NotFoundError):
    """Categoría o sous-catégorie inexistente (se expone como 400)."""

    http_status = 400


class ConflictError(StorefrontError):
    """Operación que violaría la separación categorías / sous-catégories."""

    http_status = 409


class ReplacementRequiredError(ConflictError):
    """La categoría tiene productos y hace falta una categoría de reemplazo."""


class AuthenticationError(StorefrontError):
    """Sesión de administración ausente, inválida o caducada."""

    http_status = 401


class ConfigurationError(StorefrontError):
    """Variable de entorno obligatoria ausente o inválida."""

    http_status = 500
