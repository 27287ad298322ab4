"""
API HTTP de la tienda (Flask).

Los handlers sólo leen la petición, llaman al repositorio, a los registros
o al catálogo y serializan el resultado. Los errores de dominio se
convierten en ``{"error": mensaje}`` con el código de ``http_status``.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, Optional

from flask import Flask, jsonify, request

from .catalog import ALL_CLOTHING, Catalog
from .categories.registry import CategoryRegistry, ModeSubcategoryRegistry
from .checkout import checkout
from .config import get_storage_backend, get_whatsapp_number
from .errors import AuthenticationError, ConfigurationError, NotFoundError, StorefrontError
from .repositories import Storage, open_storage
from .session import (
    COOKIE_NAME,
    TTL_SECONDS,
    UNAUTHORIZED_MESSAGE,
    WRONG_PASSWORD_MESSAGE,
    SessionSigner,
)
from .validators import parse_name, parse_optional_name, parse_product_input, parse_product_patch

logger = logging.getLogger(__name__)

PRODUCT_NOT_FOUND_MESSAGE = "Produit introuvable."


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def create_app(
    storage: Optional[Storage] = None,
    signer: Optional[SessionSigner] = None,
    whatsapp_number: Optional[str] = None,
) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        storage: Almacenes a usar; por defecto se abren con el backend
            configurado en el entorno.
        signer: Firmante de sesiones; por defecto se crea con ADMIN_PASSWORD
            en la primera petición que lo necesite.
        whatsapp_number: Número de pedidos; por defecto WHATSAPP_NUMBER.

    Returns:
        Aplicación Flask lista para servir.
    """
    app = Flask(__name__)
    app.config.setdefault("ADMIN_COOKIE_SECURE", False)

    if storage is None:
        storage = open_storage(get_storage_backend())
    if whatsapp_number is None:
        whatsapp_number = get_whatsapp_number()

    categories = CategoryRegistry(storage.categories, storage.products)
    subcategories = ModeSubcategoryRegistry(storage.mode_subcategories, storage.products)
    catalog = Catalog(storage.products, storage.mode_subcategories)

    app.extensions["luxury_market"] = storage

    def get_signer() -> SessionSigner:
        nonlocal signer
        if signer is None:
            signer = SessionSigner.from_env()
        return signer

    def admin_required(view: Callable) -> Callable:
        """Responde 401 antes de leer el cuerpo si no hay sesión válida."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            token = request.cookies.get(COOKIE_NAME)
            if not token:
                raise AuthenticationError(UNAUTHORIZED_MESSAGE)
            try:
                current = get_signer()
            except ConfigurationError:
                raise AuthenticationError(UNAUTHORIZED_MESSAGE) from None
            current.require(token)
            return view(*args, **kwargs)

        return wrapper

    # -------------------------
    # Errores
    # -------------------------
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error: StorefrontError):
        payload = {"error": error.message}
        fields = getattr(error, "fields", None)
        if fields:
            payload["fields"] = fields
        if error.http_status >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify(payload), error.http_status

    # -------------------------
    # Sesión
    # -------------------------
    @app.post("/api/admin/login")
    def admin_login():
        current = get_signer()
        body = _json_body()
        if not current.check_password(body.get("password")):
            logger.warning("Intento de acceso de administración fallido")
            raise AuthenticationError(WRONG_PASSWORD_MESSAGE)

        response = jsonify({"ok": True})
        response.set_cookie(
            COOKIE_NAME,
            current.create_token(),
            max_age=TTL_SECONDS,
            path="/",
            httponly=True,
            samesite="Lax",
            secure=app.config["ADMIN_COOKIE_SECURE"],
        )
        return response

    @app.post("/api/admin/logout")
    def admin_logout():
        response = jsonify({"ok": True})
        response.delete_cookie(COOKIE_NAME, path="/")
        return response

    # -------------------------
    # Productos (admin)
    # -------------------------
    @app.get("/api/admin/products")
    @admin_required
    def admin_list_products():
        return jsonify([p.to_dict() for p in storage.products.get_products()])

    @app.post("/api/admin/products")
    @admin_required
    def admin_create_product():
        product_input = parse_product_input(request.get_json(silent=True))
        product = storage.products.add_product(product_input)
        return jsonify(product.to_dict())

    @app.put("/api/admin/products/<product_id>")
    @admin_required
    def admin_update_product(product_id: str):
        patch = parse_product_patch(request.get_json(silent=True))
        product = storage.products.update_product(product_id, patch)
        if product is None:
            raise NotFoundError(PRODUCT_NOT_FOUND_MESSAGE)
        return jsonify(product.to_dict())

    @app.delete("/api/admin/products/<product_id>")
    @admin_required
    def admin_delete_product(product_id: str):
        if not storage.products.delete_product(product_id):
            raise NotFoundError(PRODUCT_NOT_FOUND_MESSAGE)
        return jsonify({"ok": True})

    # -------------------------
    # Categorías (admin)
    # -------------------------
    @app.get("/api/admin/categories")
    @admin_required
    def admin_list_categories():
        return jsonify([info.to_dict() for info in categories.get_category_infos()])

    @app.post("/api/admin/categories")
    @admin_required
    def admin_create_category():
        result = categories.create_category(parse_name(_json_body()))
        return jsonify(result.to_dict()), 201 if result.created else 200

    @app.patch("/api/admin/categories/<path:name>")
    @admin_required
    def admin_rename_category(name: str):
        result = categories.rename_category(name, parse_name(_json_body()))
        return jsonify({"ok": True, **result.to_dict()})

    @app.delete("/api/admin/categories/<path:name>")
    @admin_required
    def admin_delete_category(name: str):
        replacement = parse_optional_name(_json_body(), "replacement")
        result = categories.delete_category(name, replacement)
        return jsonify({"ok": True, **result.to_dict()})

    # -------------------------
    # Sous-catégories mode (admin)
    # -------------------------
    @app.get("/api/admin/mode-subcategories")
    @admin_required
    def admin_list_subcategories():
        return jsonify([info.to_dict() for info in subcategories.get_mode_subcategory_infos()])

    @app.post("/api/admin/mode-subcategories")
    @admin_required
    def admin_create_subcategory():
        result = subcategories.create_mode_subcategory(parse_name(_json_body()))
        return jsonify(result.to_dict()), 201 if result.created else 200

    @app.patch("/api/admin/mode-subcategories/<path:name>")
    @admin_required
    def admin_rename_subcategory(name: str):
        result = subcategories.rename_mode_subcategory(name, parse_name(_json_body()))
        return jsonify({"ok": True, **result.to_dict()})

    @app.delete("/api/admin/mode-subcategories/<path:name>")
    @admin_required
    def admin_delete_subcategory(name: str):
        replacement = parse_optional_name(_json_body(), "replacement")
        result = subcategories.delete_mode_subcategory(name, replacement)
        return jsonify({"ok": True, **result.to_dict()})

    # -------------------------
    # Tienda pública
    # -------------------------
    @app.get("/api/products")
    def list_products():
        universe = request.args.get("universe") or None
        return jsonify([p.to_dict() for p in catalog.get_products(universe)])

    @app.get("/api/products/<slug>")
    def show_product(slug: str):
        return jsonify(catalog.get_product(slug).to_dict())

    @app.get("/api/catalog/<universe>")
    def show_catalog(universe: str):
        clothing = request.args.get("clothing") or ALL_CLOTHING
        return jsonify(catalog.overview(universe, clothing))

    @app.post("/api/checkout/whatsapp")
    def checkout_whatsapp():
        return jsonify(checkout(storage.products, whatsapp_number, request.get_json(silent=True)))

    return app
