import pytest

from main import main


@pytest.fixture
def data_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("LUXURY_MARKET_DATA_DIR", str(tmp_path))
    return tmp_path


def run(capsys, *argv):
    main(list(argv))
    return capsys.readouterr().out


def test_categories_create_and_list(data_dir, capsys):
    assert "Creada: Bijoux" in run(capsys, "categories", "create", "Bijoux")
    assert "Ya existía: Bijoux" in run(capsys, "categories", "create", "Bijoux")
    output = run(capsys, "categories", "list")
    assert "Bijoux" in output
    assert "Vêtements" in output


def test_delete_with_products_needs_replacement(data_dir, capsys, make_input):
    from luxury_market.config import FileBackend
    from luxury_market.repositories import open_storage

    storage = open_storage(FileBackend(data_dir=data_dir))
    storage.products.add_product(make_input(category="Sacs"))

    with pytest.raises(SystemExit) as excinfo:
        main(["categories", "delete", "Sacs"])
    assert excinfo.value.code == 1

    output = run(capsys, "categories", "delete", "Sacs", "--replacement", "Maroquinerie")
    assert "1 productos reasignados" in output
    assert storage.products.get_products()[0].category == "Maroquinerie"


def test_products_show_unknown(data_dir, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["products", "show", "inconnu"])
    assert excinfo.value.code == 1
    assert "Producto no encontrado" in capsys.readouterr().out


def test_migrate_without_database(data_dir, capsys):
    run(capsys, "migrate")


def test_token_requires_password(capsys, monkeypatch):
    with pytest.raises(SystemExit):
        main(["token"])
    monkeypatch.setenv("ADMIN_PASSWORD", "motdepasse")
    token = run(capsys, "token").strip()
    assert token.count(".") == 1


def test_group_without_subcommand(capsys):
    with pytest.raises(SystemExit):
        main(["products"])
