import threading
import time

import psycopg2
import pytest

from luxury_market.database import SCHEMA_STATEMENTS, Database
from luxury_market.models import Product, ProductPatch
from luxury_market.repositories.postgres import (
    PRODUCT_COLUMNS,
    PostgresNameStore,
    PostgresProductRepository,
    parse_json_column,
    product_to_params,
    row_to_record,
)


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.conn.pool.executed.append((query, params))
        self.rows = self.conn.pool.respond(query, params)

    def fetchall(self):
        return self.rows


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    def commit(self):
        self.pool.commits += 1

    def rollback(self):
        self.pool.rollbacks += 1


class FakePool:
    """Pool que registra las sentencias y responde con ``handler``."""

    def __init__(self, handler=None):
        self.handler = handler
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self._lock = threading.Lock()

    def respond(self, query, params):
        if self.handler is None:
            return []
        return self.handler(query, params)

    def getconn(self):
        return FakeConnection(self)

    def putconn(self, conn):
        pass

    def closeall(self):
        self.closed = True

    def schema_runs(self):
        return sum(1 for query, _ in self.executed if query == SCHEMA_STATEMENTS[0])


def make_database(pool):
    return Database("postgresql://user:pw@localhost/shop", pool_factory=lambda url: pool)


def test_ensure_schema_runs_once():
    pool = FakePool()
    db = make_database(pool)

    db.ensure_schema()
    db.ensure_schema()

    assert pool.schema_runs() == 1
    assert len(pool.executed) == len(SCHEMA_STATEMENTS)
    assert pool.commits == 1


def test_concurrent_first_callers_share_one_migration():
    def slow(query, params):
        time.sleep(0.01)
        return []

    pool = FakePool(slow)
    db = make_database(pool)
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        db.ensure_schema()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert pool.schema_runs() == 1


def test_failed_migration_is_retried():
    calls = {"count": 0}

    def flaky(query, params):
        calls["count"] += 1
        if calls["count"] == 1:
            raise psycopg2.OperationalError("connection lost")
        return []

    pool = FakePool(flaky)
    db = make_database(pool)

    with pytest.raises(psycopg2.OperationalError):
        db.ensure_schema()
    assert pool.rollbacks == 1

    db.ensure_schema()
    assert pool.schema_runs() == 2


def test_close_closes_pool():
    pool = FakePool()
    db = make_database(pool)
    db.ensure_schema()
    db.close()
    assert pool.closed is True


def test_parse_json_column():
    assert parse_json_column(None, []) == []
    assert parse_json_column('["a"]', []) == ["a"]
    assert parse_json_column("{oops", {}) == {}
    assert parse_json_column(["a"], []) == ["a"]


def test_row_to_record_builds_valid_product():
    row = {
        "id": "p1",
        "slug": "sac",
        "name": "Sac",
        "price": 100,
        "category": "Sacs",
        "universe": "mode",
        "image": "sac.jpg",
        "images": None,
        "description": "Sac cuir",
        "color": None,
        "color_images": '{"Noir": ["n.jpg"]}',
        "sizes": None,
    }
    product = Product.model_validate(row_to_record(row))
    assert product.images == ["sac.jpg"]
    assert product.color_images == {"Noir": ["n.jpg"]}
    assert product.sizes == []


def test_product_to_params_wraps_json_columns():
    product = Product.model_validate(
        {
            "id": "p1",
            "slug": "sac",
            "name": "Sac",
            "price": 100,
            "category": "Sacs",
            "universe": "mode",
            "image": "sac.jpg",
            "description": "Sac cuir",
        }
    )
    params = product_to_params(product)
    assert params["images"].adapted == ["sac.jpg"]
    assert params["color_images"] is None
    assert params["sizes"] is None


def test_replace_category_is_one_bulk_update():
    def handler(query, params):
        if isinstance(query, str) and query.startswith("UPDATE products SET category"):
            return [{"id": "a"}, {"id": "b"}]
        return []

    pool = FakePool(handler)
    repo = PostgresProductRepository(make_database(pool))

    assert repo.replace_category("Sacs", "Sacs") == 0
    assert repo.replace_category("Sacs", "Maroquinerie") == 2

    updates = [q for q, _ in pool.executed if isinstance(q, str) and q.startswith("UPDATE products SET category")]
    assert len(updates) == 1
    assert pool.executed[-1][1] == ("Maroquinerie", "Sacs")


def test_count_and_delete():
    def handler(query, params):
        if isinstance(query, str) and "COUNT(*)" in query:
            return [{"count": 3}]
        if isinstance(query, str) and query.startswith("DELETE FROM products"):
            return [{"id": params[0]}] if params[0] == "p1" else []
        return []

    repo = PostgresProductRepository(make_database(FakePool(handler)))
    assert repo.count_products_by_category("Sacs") == 3
    assert repo.delete_product("p1") is True
    assert repo.delete_product("p2") is False


def test_get_product_by_slug_skips_invalid_rows():
    def handler(query, params):
        if isinstance(query, str) and "WHERE slug" in query:
            return [{"id": "p1", "slug": "x", "name": "X", "price": 1, "category": "X", "universe": "mode", "image": "", "images": []}]
        return []

    repo = PostgresProductRepository(make_database(FakePool(handler)))
    assert repo.get_product_by_slug("x") is None
    assert repo.get_product_by_slug("y") is None


def test_name_store_lists_names():
    def handler(query, params):
        if params is None and not isinstance(query, str):
            return [{"name": "Bijoux"}, {"name": "Sacs"}]
        return []

    store = PostgresNameStore(make_database(FakePool(handler)), "categories")
    assert store.list_names() == ["Bijoux", "Sacs"]


SAC_ROW = {
    "id": "p1",
    "slug": "sac",
    "name": "Sac",
    "price": 100,
    "category": "Sacs",
    "universe": "mode",
    "image": "sac.jpg",
    "images": ["sac.jpg"],
    "description": "Sac cuir",
    "color": None,
    "color_images": None,
    "sizes": None,
}


class ProductTable:
    """Responde a las lecturas del repositorio con filas en memoria."""

    def __init__(self, *rows):
        self.rows = [dict(row) for row in rows]

    def __call__(self, query, params):
        if not isinstance(query, str):
            return []
        if query == "SELECT id, slug FROM products":
            return [{"id": r["id"], "slug": r["slug"]} for r in self.rows]
        if query.startswith("SELECT * FROM products WHERE id"):
            return [r for r in self.rows if r["id"] == params[0]]
        return []


def composed_statements(pool, fragment):
    """Sentencias construidas con ``psycopg2.sql`` que contienen ``fragment``."""
    return [(q, p) for q, p in pool.executed if not isinstance(q, str) and fragment in repr(q)]


def test_add_product_inserts_every_column(make_input):
    pool = FakePool(ProductTable(SAC_ROW))
    repo = PostgresProductRepository(make_database(pool))

    product = repo.add_product(make_input(name="Sac", sizes=["M"]))

    assert product.slug == "sac-1"
    inserts = composed_statements(pool, "INSERT INTO products")
    assert len(inserts) == 1
    query, params = inserts[0]
    assert set(params) == set(PRODUCT_COLUMNS)
    assert params["id"] == product.id
    assert params["slug"] == "sac-1"
    assert params["images"].adapted == product.images
    assert params["sizes"].adapted == ["M"]
    for column in PRODUCT_COLUMNS:
        assert f"Placeholder('{column}')" in repr(query)


def test_update_product_excludes_own_slug():
    other = {**SAC_ROW, "id": "p2", "slug": "polo-rouge", "name": "Polo Rouge"}
    pool = FakePool(ProductTable(SAC_ROW, other))
    repo = PostgresProductRepository(make_database(pool))

    same_slug = repo.update_product("p1", ProductPatch.model_validate({"name": "SAC"}))
    assert same_slug.slug == "sac"

    renamed = repo.update_product("p1", ProductPatch.model_validate({"name": "Polo Rouge"}))
    assert renamed.slug == "polo-rouge-1"

    updates = composed_statements(pool, "UPDATE products SET")
    assert len(updates) == 2
    query, params = updates[-1]
    assert "WHERE id = %(id)s" in repr(query)
    assert "Identifier('id')" not in repr(query)
    assert params["id"] == "p1"
    assert params["slug"] == "polo-rouge-1"
    assert params["name"] == "Polo Rouge"


def test_update_unknown_product_returns_none():
    pool = FakePool(ProductTable())
    repo = PostgresProductRepository(make_database(pool))

    assert repo.update_product("nope", ProductPatch.model_validate({"price": 1})) is None
    assert composed_statements(pool, "UPDATE products SET") == []
