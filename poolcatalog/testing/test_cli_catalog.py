import csv
import json
from pathlib import Path

import pytest

import poolcatalog.store.catalog_store as catalog_store
from poolcatalog.cli import catalog_cli

PRODUCTS = [
    {"code": "BAZ-OBD-SK-3-6-1.2", "name": "Bazén 3 x 6 x 1,2 m", "category": "bazeny", "unit_price": 150000},
    {
        "code": "SVET-LED",
        "name": "Světlo LED",
        "category": "osvetleni",
        "unit_price": 4500,
        "required_surcharge_ids": ["SLUZ-MONTAZ-SVET"],
    },
    {
        "code": "SLUZ-MONTAZ-SVET",
        "name": "Montáž světel",
        "category": "sluzby",
        "product_type": "service",
        "price_type": "percentage",
        "reference_product_id": "SVET-LED",
        "percentage": 10,
        "minimum_price": 1500,
    },
]


@pytest.fixture()
def cli(tmp_path, monkeypatch):
    monkeypatch.setenv("POOLCATALOG_DB_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "outputs"))
    monkeypatch.setenv("QUOTE_DELIVERY_LINE", "true")
    catalog_store.init_db()
    return catalog_cli


def _write_json(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_normalize_writes_outputs(cli, tmp_path, capsys):
    raw = _write_json(
        tmp_path / "raw.json",
        [
            {"name": "Bazén Rentmil 3 x 6 x 1,2 m", "price": 150000, "category": "bazeny", "code": "B-001"},
            {"name": "Chlornan sodný 25 kg", "price": None, "category": "chemie"},
        ],
    )
    assert cli.main(["normalize", "--input", str(raw)]) == 0

    out = capsys.readouterr().out
    assert "Normalized 2 products (flagged=1" in out
    assert "Chybí cena: 1" in out
    assert (tmp_path / "outputs" / "produkty-katalog-final.csv").exists()
    assert (tmp_path / "outputs" / "produkty-normalizace-log.md").exists()


def test_normalized_json_can_be_imported(cli, tmp_path):
    raw = _write_json(
        tmp_path / "raw.json",
        [
            {"name": "Bazén Rentmil 3 x 6 x 1,2 m", "price": 150000, "category": "bazeny"},
            {"name": "Bazén Rentmil 3 x 6 x 1,2 m", "price": 150000, "category": "bazeny"},
        ],
    )
    out_dir = tmp_path / "normalized"
    assert cli.main(["normalize", "--input", str(raw), "--output-dir", str(out_dir)]) == 0
    assert cli.main(["import-products", "--path", str(out_dir / "produkty-katalog-final.json")]) == 0
    codes = [product["code"] for product in catalog_store.list_products()]
    assert codes == ["BAZ-OBD-SK-3-6-1.2", "BAZ-OBD-SK-3-6-1.2-2"]


def test_import_export_roundtrip_csv(cli, tmp_path, capsys):
    source = _write_json(tmp_path / "products.json", PRODUCTS)
    assert cli.main(["import-products", "--path", str(source)]) == 0
    assert "inserted=3 updated=0" in capsys.readouterr().out

    export_path = tmp_path / "export.csv"
    assert cli.main(["export-products", "--path", str(export_path)]) == 0
    with export_path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle, delimiter=";"))
    assert [row["code"] for row in rows] == ["BAZ-OBD-SK-3-6-1.2", "SLUZ-MONTAZ-SVET", "SVET-LED"]
    assert rows[2]["required_surcharge_ids"] == "SLUZ-MONTAZ-SVET"

    catalog_store.delete_product("SVET-LED")
    assert cli.main(["import-products", "--path", str(export_path)]) == 0
    assert "inserted=0 updated=3" in capsys.readouterr().out
    assert len(catalog_store.list_products()) == 3


def test_import_rejects_dangling_reference(cli, tmp_path, capsys):
    broken = [dict(PRODUCTS[2], reference_product_id="NEEXISTUJE")]
    source = _write_json(tmp_path / "broken.json", broken)
    assert cli.main(["import-products", "--path", str(source)]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: Katalog obsahuje chyby")
    assert "NEEXISTUJE" in err
    assert catalog_store.list_products() == []


def test_import_requires_known_format(cli, tmp_path, capsys):
    source = tmp_path / "products.txt"
    source.write_text("code;name\n", encoding="utf-8")
    assert cli.main(["import-products", "--path", str(source)]) == 1
    assert "Please pass --format" in capsys.readouterr().err


def test_parse_code(cli, capsys):
    assert cli.main(["parse-code", "BAZ-OBD-SK-3-6-1.2"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["shape"] == "rectangle"
    assert payload["surface"] == 39.6
    assert payload["perimeter"] == 18.0

    assert cli.main(["parse-code", "SCHOD-STD"]) == 1
    assert "is not a pool code" in capsys.readouterr().err


def test_resolve_quote(cli, tmp_path, capsys):
    cli.main(["import-products", "--path", str(_write_json(tmp_path / "products.json", PRODUCTS))])
    capsys.readouterr()
    configuration = _write_json(
        tmp_path / "config.json",
        {
            "id": "cfg-1",
            "pool_shape": "rectangle_sharp",
            "pool_type": "skimmer",
            "dimensions": {"width": 3, "length": 6, "depth": 1.2},
            "lighting": "led",
            "stairs": "roman",
        },
    )
    assert cli.main(["resolve-quote", "--configuration", str(configuration), "--variant", "A"]) == 0
    captured = capsys.readouterr()
    items = json.loads(captured.out)
    assert [item["product_id"] for item in items] == [
        "BAZ-OBD-SK-3-6-1.2",
        "SVET-LED",
        "SLUZ-MONTAZ-SVET",
        None,
    ]
    assert items[-1]["name"] == "Doprava"
    assert all(item["variant_keys"] == ["A"] for item in items)
    assert "Schodiště: roman" in captured.err


def test_stats(cli, tmp_path, capsys):
    cli.main(["import-products", "--path", str(_write_json(tmp_path / "products.json", PRODUCTS))])
    catalog_store.delete_product("SVET-LED")
    capsys.readouterr()
    assert cli.main(["stats"]) == 0
    assert "active=2 total=3" in capsys.readouterr().out
