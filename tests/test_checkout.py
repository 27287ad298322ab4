from urllib.parse import parse_qs, urlsplit

import pytest

from luxury_market.checkout import (
    Cart,
    OrderForm,
    OrderFormError,
    build_order_message,
    build_whatsapp_url,
    checkout,
    clamp_quantity,
    format_price,
    line_key,
)
from luxury_market.errors import NotFoundError, ValidationError
from luxury_market.models import Product


def make_product(product_id="p1", name="Chemise", price=12500):
    return Product.model_validate(
        {
            "id": product_id,
            "slug": name.lower(),
            "name": name,
            "price": price,
            "category": "Chemise",
            "universe": "mode",
            "image": f"{product_id}.jpg",
            "description": "Chemise en lin",
        }
    )


def test_format_price():
    assert format_price(0) == "0 F"
    assert format_price(950) == "950 F"
    assert format_price(12500) == "12\u202f500 F"
    assert format_price(1250000) == "1\u202f250\u202f000 F"


@pytest.mark.parametrize(
    "value, expected",
    [(3, 3), (2.7, 2), (0, 1), (-4, 1), ("5", 5), ("x", 1), (None, 1), (float("inf"), 1)],
)
def test_clamp_quantity(value, expected):
    assert clamp_quantity(value) == expected


class TestCart:
    def test_lines_keyed_by_color_and_size(self):
        cart = Cart()
        product = make_product()
        cart.add_item(product, 1, color="Noir", size="M")
        cart.add_item(product, 2, color="Noir", size="M")
        cart.add_item(product, 1, color="Blanc", size="M")
        cart.add_item(product)

        assert len(cart.items) == 3
        assert cart.items[0].quantity == 3
        assert cart.item_count == 5
        assert cart.subtotal == 5 * 12500

    def test_blank_options_are_the_same_line(self):
        cart = Cart()
        product = make_product()
        cart.add_item(product, color=" ", size="")
        cart.add_item(product)
        assert len(cart.items) == 1
        assert cart.items[0].key == line_key("p1")

    def test_update_quantity(self):
        cart = Cart()
        product = make_product()
        cart.add_item(product, color="Noir")
        key = line_key("p1", "Noir")

        cart.update_quantity(key, 4.9)
        assert cart.items[0].quantity == 4

        cart.update_quantity(key, 0)
        assert cart.is_empty()

    def test_remove_and_clear(self):
        cart = Cart()
        cart.add_item(make_product("p1"))
        cart.add_item(make_product("p2", "Polo", 8000))
        cart.remove_item(line_key("p1"))
        assert [item.product_id for item in cart.items] == ["p2"]
        cart.clear()
        assert cart.item_count == 0
        assert cart.subtotal == 0


class TestOrderForm:
    def test_valid(self):
        form = OrderForm(name=" Awa ", email="awa@example.com", phone="+221 77 000 00 00", message="Bonjour, je veux ce sac.")
        assert form.errors() == {}
        form.validate()
        assert form.name == "Awa"

    def test_errors(self):
        form = OrderForm(name="A", email="awa@", phone="12", message="court")
        assert form.errors() == {
            "name": "Au moins 2 caractères.",
            "email": "Email invalide.",
            "phone": "Numéro invalide.",
            "message": "Minimum 8 caractères.",
        }

    def test_required(self):
        with pytest.raises(OrderFormError) as excinfo:
            OrderForm().validate()
        assert excinfo.value.message == "Le nom est requis."
        assert excinfo.value.fields["message"] == "Le message est requis."
        assert excinfo.value.http_status == 400


def test_order_message_with_cart():
    cart = Cart()
    cart.add_item(make_product(), 2, color="Noir", size="M")
    form = OrderForm(name="Awa", message="Livraison à Dakar svp")

    message = build_order_message(form, cart)

    assert message.splitlines() == [
        "Bonjour Luxury Market,",
        "",
        "Je souhaite passer une commande.",
        "",
        "Nom : Awa",
        "Email : Non renseigné",
        "Téléphone : Non renseigné",
        "",
        "Panier :",
        "- Chemise (Couleur : Noir, Taille : M) x2 : 25\u202f000 F",
        "Total panier : 25\u202f000 F",
        "",
        "Message :",
        "Livraison à Dakar svp",
    ]


def test_order_message_without_cart():
    form = OrderForm(name="Awa", message="Je voudrais ce sac", article="Sac Milano")
    assert "Article : Sac Milano" in build_order_message(form)
    assert "Article : Non précisé" in build_order_message(OrderForm(name="Awa", message="12345678"))


def test_whatsapp_url():
    url = build_whatsapp_url("+221 77 324 96 42", "Bonjour & merci\nNom : Awa")
    parts = urlsplit(url)
    assert parts.netloc == "wa.me"
    assert parts.path == "/221773249642"
    assert parse_qs(parts.query)["text"] == ["Bonjour & merci\nNom : Awa"]
    assert "%20" in url and "%0A" in url


class FakeProducts:
    def __init__(self, *products):
        self.products = {p.id: p for p in products}

    def get_product_by_id(self, product_id):
        return self.products.get(product_id)


def test_checkout_uses_stored_prices():
    products = FakeProducts(make_product())
    body = {
        "name": "Awa",
        "message": "Merci de me rappeler",
        "items": [{"id": "p1", "quantity": 2, "price": 1}],
    }

    result = checkout(products, "221773249642", body)

    assert result["subtotal"] == 25000
    assert result["itemCount"] == 2
    assert result["subtotalLabel"] == "25\u202f000 F"
    assert result["url"].startswith("https://wa.me/221773249642?text=")


def test_checkout_errors():
    products = FakeProducts(make_product())
    with pytest.raises(ValidationError):
        checkout(products, "221773249642", ["pas", "un", "objet"])
    with pytest.raises(OrderFormError):
        checkout(products, "221773249642", {"name": "Awa", "message": "court"})
    with pytest.raises(NotFoundError):
        checkout(
            products,
            "221773249642",
            {"name": "Awa", "message": "Merci beaucoup", "items": [{"id": "zz"}]},
        )
