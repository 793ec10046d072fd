from pathlib import Path

from poolcatalog.app.settings import DEFAULT_SELECTION_RULES, load_settings

_VARS = (
    "POOLCATALOG_DB_URL",
    "DB_URL",
    "OUTPUT_DIR",
    "CURRENCY",
    "PRICE_GRANULARITY",
    "QUOTE_DELIVERY_LINE",
    "SELECTION_RULES_PATH",
    "FRONTEND_ORIGINS",
    "DEBUG",
)


def _clear(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)
    settings = load_settings()
    assert settings.db_url.startswith("sqlite:///")
    assert settings.db_url.endswith("poolcatalog.db")
    assert settings.currency == "CZK"
    assert settings.price_granularity == 1.0
    assert settings.include_delivery is True
    assert settings.selection_rules_path == DEFAULT_SELECTION_RULES
    assert settings.debug is False


def test_environment_overrides(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("DB_URL", "sqlite:///fallback.db")
    monkeypatch.setenv("POOLCATALOG_DB_URL", "sqlite:///primary.db")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path))
    monkeypatch.setenv("PRICE_GRANULARITY", "0,5")
    monkeypatch.setenv("QUOTE_DELIVERY_LINE", "off")
    monkeypatch.setenv("SELECTION_RULES_PATH", str(tmp_path / "rules.yaml"))
    monkeypatch.setenv("FRONTEND_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("DEBUG", "1")

    settings = load_settings()
    assert settings.db_url == "sqlite:///primary.db"
    assert settings.output_dir == Path(tmp_path)
    assert settings.price_granularity == 0.5
    assert settings.include_delivery is False
    assert settings.selection_rules_path == tmp_path / "rules.yaml"
    assert settings.allowed_origins == ("https://a.example", "https://b.example")
    assert settings.debug is True


def test_invalid_granularity_falls_back(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("PRICE_GRANULARITY", "celé koruny")
    assert load_settings().price_granularity == 1.0
