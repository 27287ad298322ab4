"""
Panier y pedido por WhatsApp.

No hay pago en línea: el pedido se convierte en un mensaje de texto y se
devuelve un enlace ``wa.me`` que abre la conversación con la tienda.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import NotFoundError, ValidationError
from .models import Product
from .repositories.base import ProductRepository
from .validators import format_validation_error

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s+.-]{8,20}$")

MIN_NAME_LENGTH = 2
MIN_MESSAGE_LENGTH = 8
NOT_PROVIDED = "Non renseigné"
NOT_SPECIFIED = "Non précisé"

# Separador de miles de fr-FR (espacio fino no separable)
THOUSANDS_SEPARATOR = "\u202f"

# Caracteres que se dejan sin codificar en el parámetro text
URI_COMPONENT_SAFE = "-_.!~*'()"

LineKey = Tuple[str, Optional[str], Optional[str]]


def format_price(price: float) -> str:
    """Precio con separador de miles francés y sufijo " F" (12 500 F)."""
    amount = int(round(price))
    return f"{amount:,}".replace(",", THOUSANDS_SEPARATOR) + " F"


def clamp_quantity(quantity: Any) -> int:
    """Cantidad entera mínima 1; cualquier valor no numérico cuenta como 1."""
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(value):
        return 1
    return max(1, math.floor(value))


def _clean_option(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def line_key(product_id: str, color: Optional[str] = None, size: Optional[str] = None) -> LineKey:
    """Identidad de una línea: el mismo producto en otro color o talla es otra línea."""
    return (product_id, _clean_option(color), _clean_option(size))


@dataclass
class CartItem:
    product_id: str
    slug: str
    name: str
    price: int
    quantity: int = 1
    color: Optional[str] = None
    size: Optional[str] = None

    @property
    def key(self) -> LineKey:
        return line_key(self.product_id, self.color, self.size)

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.product_id,
            "slug": self.slug,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "color": self.color,
            "size": self.size,
        }


@dataclass
class Cart:
    """Líneas de pedido en el orden en que se añadieron."""

    items: List[CartItem] = field(default_factory=list)

    def _find(self, key: LineKey) -> Optional[CartItem]:
        for item in self.items:
            if item.key == key:
                return item
        return None

    def add_item(
        self,
        product: Product,
        quantity: Any = 1,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> CartItem:
        """Añade un producto o suma la cantidad si la línea ya existe."""
        qty = clamp_quantity(quantity)
        key = line_key(product.id, color, size)
        existing = self._find(key)
        if existing is not None:
            existing.quantity = clamp_quantity(existing.quantity + qty)
            return existing

        item = CartItem(
            product_id=product.id,
            slug=product.slug,
            name=product.name,
            price=product.price,
            quantity=qty,
            color=key[1],
            size=key[2],
        )
        self.items.append(item)
        return item

    def update_quantity(self, key: LineKey, quantity: Any) -> None:
        """Fija la cantidad de una línea; 0 o menos la elimina."""
        try:
            remove = float(quantity) <= 0
        except (TypeError, ValueError):
            remove = False
        if remove:
            self.remove_item(key)
            return

        item = self._find(key)
        if item is not None:
            item.quantity = clamp_quantity(quantity)

    def remove_item(self, key: LineKey) -> None:
        self.items = [item for item in self.items if item.key != key]

    def clear(self) -> None:
        self.items = []

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> int:
        return sum(item.line_total for item in self.items)

    def is_empty(self) -> bool:
        return not self.items


class OrderFormError(ValidationError):
    """Formulario de pedido con errores, con el mensaje de cada campo."""

    def __init__(self, fields: Dict[str, str]):
        super().__init__(next(iter(fields.values())))
        self.fields = fields


@dataclass
class OrderForm:
    """Datos del cliente del formulario de pedido."""

    name: str = ""
    email: str = ""
    phone: str = ""
    message: str = ""
    article: str = ""

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.email = (self.email or "").strip()
        self.phone = (self.phone or "").strip()
        self.message = (self.message or "").strip()
        self.article = (self.article or "").strip()

    def errors(self) -> Dict[str, str]:
        """Mensaje de error por campo; vacío si el formulario es válido."""
        errors = {}

        if not self.name:
            errors["name"] = "Le nom est requis."
        elif len(self.name) < MIN_NAME_LENGTH:
            errors["name"] = "Au moins 2 caractères."

        if self.email and not EMAIL_PATTERN.match(self.email):
            errors["email"] = "Email invalide."

        if self.phone and not PHONE_PATTERN.match(self.phone):
            errors["phone"] = "Numéro invalide."

        if not self.message:
            errors["message"] = "Le message est requis."
        elif len(self.message) < MIN_MESSAGE_LENGTH:
            errors["message"] = "Minimum 8 caractères."

        return errors

    def validate(self) -> None:
        """
        Raises:
            OrderFormError: Si algún campo no es válido.
        """
        errors = self.errors()
        if errors:
            raise OrderFormError(errors)


def _item_label(item: CartItem) -> str:
    details = []
    if item.color:
        details.append(f"Couleur : {item.color}")
    if item.size:
        details.append(f"Taille : {item.size}")
    if details:
        return f"{item.name} ({', '.join(details)})"
    return item.name


def build_order_message(form: OrderForm, cart: Optional[Cart] = None) -> str:
    """
    Texto del pedido que se envía por WhatsApp.

    Con carrito se listan las líneas y el total; sin carrito se usa el
    artículo indicado en el formulario.
    """
    lines = [
        "Bonjour Luxury Market,",
        "",
        "Je souhaite passer une commande.",
        "",
        f"Nom : {form.name}",
        f"Email : {form.email or NOT_PROVIDED}",
        f"Téléphone : {form.phone or NOT_PROVIDED}",
    ]

    if cart is not None and not cart.is_empty():
        lines.extend(["", "Panier :"])
        for item in cart.items:
            lines.append(
                f"- {_item_label(item)} x{item.quantity} : {format_price(item.line_total)}"
            )
        lines.append(f"Total panier : {format_price(cart.subtotal)}")
    else:
        lines.append(f"Article : {form.article or NOT_SPECIFIED}")

    lines.extend(["", "Message :", form.message])
    return "\n".join(lines)


def build_whatsapp_url(number: str, message: str) -> str:
    """Enlace ``wa.me`` con el mensaje ya codificado."""
    digits = re.sub(r"\D+", "", number)
    return f"https://wa.me/{digits}?text={quote(message, safe=URI_COMPONENT_SAFE)}"


class CheckoutLine(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(min_length=1)
    quantity: Any = 1
    color: Optional[str] = None
    size: Optional[str] = None


class CheckoutRequest(BaseModel):
    """Cuerpo de ``POST /api/checkout/whatsapp``."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    email: str = ""
    phone: str = ""
    message: str = ""
    article: str = ""
    items: List[CheckoutLine] = Field(default_factory=list)


def parse_checkout_request(body: Any) -> CheckoutRequest:
    """
    Raises:
        ValidationError: Si el cuerpo no tiene la forma esperada.
    """
    if not isinstance(body, dict):
        raise ValidationError("Corps de requête invalide.")
    try:
        return CheckoutRequest.model_validate(body)
    except pydantic.ValidationError as exc:
        raise ValidationError(format_validation_error(exc)) from exc


def build_cart(products: ProductRepository, lines: List[CheckoutLine]) -> Cart:
    """
    Construye el carrito con los precios guardados, no con los del cliente.

    Raises:
        NotFoundError: Si alguna línea apunta a un producto inexistente.
    """
    cart = Cart()
    for line in lines:
        product = products.get_product_by_id(line.id)
        if product is None:
            raise NotFoundError("Produit introuvable.")
        cart.add_item(product, line.quantity, color=line.color, size=line.size)
    return cart


def checkout(products: ProductRepository, whatsapp_number: str, body: Any) -> Dict[str, Any]:
    """
    Valida un pedido y prepara el enlace de WhatsApp.

    Args:
        products: Repositorio para resolver las líneas del carrito.
        whatsapp_number: Número de la tienda.
        body: Cuerpo JSON de la petición.

    Returns:
        Diccionario con ``url``, ``message``, ``itemCount`` y ``subtotal``.

    Raises:
        ValidationError: Si el cuerpo o el formulario no son válidos.
        NotFoundError: Si el carrito contiene un producto inexistente.
    """
    request = parse_checkout_request(body)
    form = OrderForm(
        name=request.name,
        email=request.email,
        phone=request.phone,
        message=request.message,
        article=request.article,
    )
    form.validate()

    cart = build_cart(products, request.items)
    message = build_order_message(form, cart)
    logger.info(f"Pedido preparado: {cart.item_count} artículos, {cart.subtotal}")

    return {
        "url": build_whatsapp_url(whatsapp_number, message),
        "message": message,
        "items": [item.to_dict() for item in cart.items],
        "itemCount": cart.item_count,
        "subtotal": cart.subtotal,
        "subtotalLabel": format_price(cart.subtotal),
    }
