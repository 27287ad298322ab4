import pytest

from luxury_market.config import FileBackend
from luxury_market.models import ProductInput
from luxury_market.repositories import open_storage

ENV_VARS = (
    "DATABASE_URL",
    "POSTGRES_URL",
    "ADMIN_PASSWORD",
    "LUXURY_MARKET_DATA_DIR",
    "WHATSAPP_NUMBER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Cada test empieza sin variables de la tienda (ni las de un .env local)."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def storage(tmp_path):
    storage = open_storage(FileBackend(data_dir=tmp_path))
    yield storage
    storage.close()


@pytest.fixture
def make_input():
    def factory(**overrides):
        data = {
            "name": "Chemise Bleue",
            "price": 12500,
            "category": "Chemise",
            "universe": "mode",
            "image": "https://cdn.example.com/chemise.jpg",
            "description": "Chemise en coton.",
        }
        data.update(overrides)
        return ProductInput.model_validate(data)

    return factory
