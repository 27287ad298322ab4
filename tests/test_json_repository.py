import json

import pytest

from luxury_market.errors import ValidationError
from luxury_market.models import ProductPatch
from luxury_market.repositories import JsonNameStore, JsonProductRepository, slugify, unique_slug
from luxury_market.repositories.base import generate_id


def test_slugify():
    assert slugify("Chemise Bleue") == "chemise-bleue"
    assert slugify("  Été & 2024 !") == "ete-2024"
    assert slugify("***") == "produit"


def test_unique_slug_appends_suffix():
    assert unique_slug("Chemise Bleue", set()) == "chemise-bleue"
    assert unique_slug("Chemise Bleue", {"chemise-bleue"}) == "chemise-bleue-1"
    assert unique_slug("Chemise Bleue", {"chemise-bleue", "chemise-bleue-1"}) == "chemise-bleue-2"


def test_generate_id_is_unique():
    ids = {generate_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(i.isalnum() and i == i.lower() for i in ids)


def test_add_then_get_round_trip(storage, make_input):
    product_input = make_input(images=["https://cdn.example.com/dos.jpg"], sizes=["M", "L"])
    product = storage.products.add_product(product_input)

    stored = storage.products.get_product_by_id(product.id)
    assert stored == product
    assert stored.name == "Chemise Bleue"
    assert stored.price == 12500
    assert stored.slug == "chemise-bleue"
    assert stored.images[0] == stored.image == "https://cdn.example.com/chemise.jpg"
    assert stored.images == [
        "https://cdn.example.com/chemise.jpg",
        "https://cdn.example.com/dos.jpg",
    ]
    assert stored.sizes == ["M", "L"]
    assert storage.products.get_product_by_slug("chemise-bleue") == product


def test_slug_collision(storage, make_input):
    first = storage.products.add_product(make_input())
    second = storage.products.add_product(make_input())
    assert first.slug == "chemise-bleue"
    assert second.slug == "chemise-bleue-1"
    assert first.id != second.id


def test_add_requires_an_image(storage, make_input):
    with pytest.raises(ValidationError):
        storage.products.add_product(make_input(image=None, images=[]))
    assert storage.products.get_products() == []


def test_images_only_input(storage, make_input):
    product = storage.products.add_product(make_input(image=None, images=["a.jpg", "b.jpg"]))
    assert product.image == "a.jpg"


def test_update_regenerates_slug_on_rename(storage, make_input):
    taken = storage.products.add_product(make_input(name="Polo Rouge"))
    product = storage.products.add_product(make_input())

    patch = ProductPatch.model_validate({"name": "Polo Rouge", "price": 9000})
    updated = storage.products.update_product(product.id, patch)

    assert updated.slug == "polo-rouge-1"
    assert updated.price == 9000
    assert updated.category == "Chemise"
    assert storage.products.get_product_by_id(taken.id).slug == "polo-rouge"


def test_update_keeps_slug_when_name_unchanged(storage, make_input):
    product = storage.products.add_product(make_input())
    patch = ProductPatch.model_validate({"name": "Chemise Bleue", "color": ""})
    updated = storage.products.update_product(product.id, patch)
    assert updated.slug == "chemise-bleue"
    assert updated.color is None


def test_update_images(storage, make_input):
    product = storage.products.add_product(make_input())
    patch = ProductPatch.model_validate({"images": ["x.jpg", "y.jpg"]})
    updated = storage.products.update_product(product.id, patch)
    assert updated.image == "x.jpg"
    assert updated.images == ["x.jpg", "y.jpg"]


def test_update_unknown_id_returns_none(storage):
    assert storage.products.update_product("nope", ProductPatch()) is None


def test_delete(storage, make_input):
    product = storage.products.add_product(make_input())
    assert storage.products.delete_product(product.id) is True
    assert storage.products.delete_product(product.id) is False
    assert storage.products.get_products() == []


def test_count_and_replace_category(storage, make_input):
    storage.products.add_product(make_input(category="Sacs"))
    storage.products.add_product(make_input(category="Sacs"))
    storage.products.add_product(make_input(category="Montres"))

    assert storage.products.count_products_by_category("Sacs") == 2
    assert storage.products.replace_category("Sacs", "Sacs") == 0
    assert storage.products.replace_category("Sacs", "Maroquinerie") == 2
    assert storage.products.count_products_by_category("Sacs") == 0
    assert storage.products.count_products_by_category("Maroquinerie") == 2


def test_products_by_universe(storage, make_input):
    storage.products.add_product(make_input())
    storage.products.add_product(make_input(name="Lampe", universe="tout", category="Luminaire"))
    assert [p.name for p in storage.products.get_products_by_universe("tout")] == ["Lampe"]


def test_file_layout(storage, make_input, tmp_path):
    storage.products.add_product(make_input(color_images={"Noir": ["n.jpg"]}))
    raw = (tmp_path / "products.json").read_text(encoding="utf-8")
    assert raw.startswith("[\n  {")
    data = json.loads(raw)
    assert data[0]["colorImages"] == {"Noir": ["n.jpg"]}


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "products.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonProductRepository(path).get_products() == []

    path.write_text('{"id": "x"}', encoding="utf-8")
    assert JsonProductRepository(path).get_products() == []


def test_invalid_records_are_skipped(tmp_path):
    path = tmp_path / "products.json"
    records = [
        {
            "id": "a1",
            "slug": "sac",
            "name": "Sac",
            "price": 100,
            "category": "Sacs",
            "universe": "mode",
            "image": "sac.jpg",
            "description": "Sac cuir",
        },
        {"id": "a2", "slug": "x", "name": "X", "price": 1, "category": "X", "universe": "mode"},
        {"id": "a3", "universe": "ailleurs"},
    ]
    path.write_text(json.dumps(records), encoding="utf-8")

    products = JsonProductRepository(path).get_products()
    assert [p.id for p in products] == ["a1"]
    # Registro antiguo sin "images": se completa con la foto principal.
    assert products[0].images == ["sac.jpg"]


LEGACY_RECORD = {
    "id": "old1",
    "slug": "sac-ancien",
    "name": "Sac ancien",
    "price": 10.5,
    "category": "Sacs",
    "universe": "mode",
    "image": "ancien.jpg",
    "description": "Ancien modèle",
}


def read_records(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_writes_keep_invalid_records(tmp_path, make_input):
    path = tmp_path / "products.json"
    path.write_text(json.dumps([LEGACY_RECORD]), encoding="utf-8")
    repo = JsonProductRepository(path)

    product = repo.add_product(make_input(name="Sac ancien"))
    assert product.slug == "sac-ancien-1"
    assert read_records(path)[0] == LEGACY_RECORD

    repo.update_product(product.id, ProductPatch.model_validate({"price": 900}))
    assert read_records(path)[0] == LEGACY_RECORD

    repo.delete_product(product.id)
    assert read_records(path) == [LEGACY_RECORD]
    assert repo.get_products() == []


def test_invalid_record_is_not_updated_but_can_be_reassigned_or_deleted(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps([LEGACY_RECORD]), encoding="utf-8")
    repo = JsonProductRepository(path)

    assert repo.update_product("old1", ProductPatch.model_validate({"price": 900})) is None
    assert repo.count_products_by_category("Sacs") == 1
    assert repo.replace_category("Sacs", "Maroquinerie") == 1
    assert read_records(path) == [{**LEGACY_RECORD, "category": "Maroquinerie"}]

    assert repo.delete_product("old1") is True
    assert read_records(path) == []


def test_name_store(tmp_path):
    store = JsonNameStore(tmp_path / "categories.json")
    assert store.list_names() == []

    store.add_name("Sacs")
    store.add_name("Bijoux")
    store.add_name("Sacs")
    assert store.list_names() == ["Bijoux", "Sacs"]

    store.remove_name("Sacs")
    store.remove_name("Inconnue")
    assert store.list_names() == ["Bijoux"]
