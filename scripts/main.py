#!/usr/bin/env python3
"""
CLI de la tienda Luxury Market.

Uso:
    python main.py serve --port 5000            # Servir la API HTTP
    python main.py migrate                      # Crear/completar tablas Postgres

    python main.py products list --universe mode
    python main.py products show chemise-bleue  # Por id o slug
    python main.py products delete ID

    python main.py categories list
    python main.py categories rename Sacs Maroquinerie
    python main.py categories delete Sacs --replacement Maroquinerie

    python main.py subcategories create Blazer
    python main.py token                        # Token de sesión admin
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from luxury_market.categories.registry import CategoryRegistry, ModeSubcategoryRegistry
from luxury_market.config import SqlBackend, get_storage_backend
from luxury_market.errors import StorefrontError
from luxury_market.models import UNIVERSES
from luxury_market.repositories import Storage, open_storage
from luxury_market.session import SessionSigner

# Configuración de logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def open_configured_storage() -> Storage:
    """Abre los almacenes del backend configurado en el entorno."""
    return open_storage(get_storage_backend())


def cmd_serve(args):
    """Comando: serve"""
    from luxury_market.web import create_app

    storage = open_configured_storage()
    try:
        app = create_app(storage=storage)
        app.config["ADMIN_COOKIE_SECURE"] = args.secure_cookie
        logger.info(f"Sirviendo en http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=args.debug)
    finally:
        storage.close()


def cmd_migrate(args):
    """Comando: migrate"""
    backend = get_storage_backend()
    if not isinstance(backend, SqlBackend):
        logger.info("Backend de ficheros: no hay nada que migrar")
        return

    storage = open_storage(backend)
    try:
        storage.database.ensure_schema()
    finally:
        storage.close()


def cmd_products_list(args):
    """Comando: products list"""
    storage = open_configured_storage()
    try:
        if args.universe:
            products = storage.products.get_products_by_universe(args.universe)
        else:
            products = storage.products.get_products()
    finally:
        storage.close()

    if not products:
        print("No hay productos")
        return

    print(f"\n{'ID':<22} {'UNIVERSO':<8} {'PRECIO':>10}  NOMBRE")
    print("=" * 70)
    for product in products:
        print(f"{product.id:<22} {product.universe:<8} {product.price:>10}  {product.name}")
        print(f"{'':<22} {product.category} / {product.slug}")
    print(f"\nTotal: {len(products)} productos")


def cmd_products_show(args):
    """Comando: products show"""
    storage = open_configured_storage()
    try:
        product = storage.products.get_product_by_id(args.ref)
        if product is None:
            product = storage.products.get_product_by_slug(args.ref)
    finally:
        storage.close()

    if product is None:
        print(f"Producto no encontrado: {args.ref}")
        sys.exit(1)

    for key, value in product.to_dict().items():
        print(f"  {key}: {value}")


def cmd_products_delete(args):
    """Comando: products delete"""
    storage = open_configured_storage()
    try:
        deleted = storage.products.delete_product(args.product_id)
    finally:
        storage.close()

    if not deleted:
        print(f"Producto no encontrado: {args.product_id}")
        sys.exit(1)
    print(f"Producto eliminado: {args.product_id}")


def _registry(storage: Storage, kind: str):
    if kind == "subcategories":
        return ModeSubcategoryRegistry(storage.mode_subcategories, storage.products)
    return CategoryRegistry(storage.categories, storage.products)


def cmd_names_list(args):
    """Comando: categories list / subcategories list"""
    storage = open_configured_storage()
    try:
        infos = _registry(storage, args.command).infos()
    finally:
        storage.close()

    for info in infos:
        print(f"  {info.name:<30} {info.count:>5}")
    print(f"\nTotal: {len(infos)}")


def cmd_names_create(args):
    """Comando: categories create / subcategories create"""
    storage = open_configured_storage()
    try:
        result = _registry(storage, args.command).create(args.name)
    finally:
        storage.close()

    if result.created:
        print(f"Creada: {result.name}")
    else:
        print(f"Ya existía: {result.name}")


def cmd_names_rename(args):
    """Comando: categories rename / subcategories rename"""
    storage = open_configured_storage()
    try:
        result = _registry(storage, args.command).rename(args.name, args.next_name)
    finally:
        storage.close()

    action = "Fusionada" if result.merged else "Renombrada"
    print(f"{action}: {args.name} -> {args.next_name} ({result.reassigned} productos)")


def cmd_names_delete(args):
    """Comando: categories delete / subcategories delete"""
    storage = open_configured_storage()
    try:
        result = _registry(storage, args.command).delete(args.name, args.replacement)
    finally:
        storage.close()

    print(f"Eliminada: {args.name} ({result.reassigned} productos reasignados)")


def cmd_token(args):
    """Comando: token"""
    print(SessionSigner.from_env().create_token())


def add_name_commands(subparsers, command: str, label: str):
    """Sub-comandos comunes de categories y subcategories."""
    parser = subparsers.add_parser(command, help=f"Gestión de {label}")
    names = parser.add_subparsers(dest="name_command")

    list_parser = names.add_parser("list", help=f"Ver {label} y número de productos")
    list_parser.set_defaults(func=cmd_names_list)

    create_parser = names.add_parser("create", help=f"Registrar {label}")
    create_parser.add_argument("name")
    create_parser.set_defaults(func=cmd_names_create)

    rename_parser = names.add_parser("rename", help="Renombrar (o fusionar si ya existe)")
    rename_parser.add_argument("name")
    rename_parser.add_argument("next_name")
    rename_parser.set_defaults(func=cmd_names_rename)

    delete_parser = names.add_parser("delete", help="Eliminar reasignando sus productos")
    delete_parser.add_argument("name")
    delete_parser.add_argument(
        "--replacement",
        metavar="NOMBRE",
        help="Destino de los productos que la usan",
    )
    delete_parser.set_defaults(func=cmd_names_delete)

    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tienda Luxury Market",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Comandos disponibles")

    # Comando: serve
    serve_parser = subparsers.add_parser("serve", help="Servir la API HTTP")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=5000)
    serve_parser.add_argument("--debug", action="store_true", help="Modo debug de Flask")
    serve_parser.add_argument(
        "--secure-cookie",
        action="store_true",
        help="Cookie de sesión sólo por HTTPS",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # Comando: migrate
    migrate_parser = subparsers.add_parser("migrate", help="Migrar el esquema Postgres")
    migrate_parser.set_defaults(func=cmd_migrate)

    # Comando: products
    products_parser = subparsers.add_parser("products", help="Consultar productos")
    products_subparsers = products_parser.add_subparsers(dest="products_command")

    list_parser = products_subparsers.add_parser("list", help="Listar productos")
    list_parser.add_argument("--universe", choices=UNIVERSES)
    list_parser.set_defaults(func=cmd_products_list)

    show_parser = products_subparsers.add_parser("show", help="Ver un producto")
    show_parser.add_argument("ref", help="ID o slug del producto")
    show_parser.set_defaults(func=cmd_products_show)

    delete_parser = products_subparsers.add_parser("delete", help="Eliminar un producto")
    delete_parser.add_argument("product_id")
    delete_parser.set_defaults(func=cmd_products_delete)

    # Comandos: categories / subcategories
    categories_parser = add_name_commands(subparsers, "categories", "categorías")
    subcategories_parser = add_name_commands(
        subparsers, "subcategories", "subcategorías de moda"
    )

    # Comando: token
    token_parser = subparsers.add_parser("token", help="Generar un token de sesión admin")
    token_parser.set_defaults(func=cmd_token)

    for group_parser in (products_parser, categories_parser, subcategories_parser):
        group_parser.set_defaults(print_help=group_parser.print_help)

    return parser


def main(argv=None):
    """Punto de entrada del CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if not hasattr(args, "func"):
        args.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.warning("Proceso interrumpido por el usuario")
        sys.exit(1)
    except StorefrontError as e:
        logger.error(f"Error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
