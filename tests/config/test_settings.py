"""
Tests for settings loading: shipped defaults, override merge and validation.
"""

from decimal import Decimal

import pytest
import yaml

from importcost_config import ContainerDefaults, DistributionSettings, get_settings
from importcost_config.loader import merge, parse_weekday


def write_yaml(path, data) -> str:
    path.write_text(yaml.safe_dump(data))
    return str(path)


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv("IMPORTCOST_CONFIG", raising=False)


class TestShippedDefaults:
    def test_currencies(self):
        settings = get_settings()
        assert settings.currencies.hard_currency == "USD"
        assert settings.currencies.local_currency == "CUP"
        rates = {c.code: c.default_rate for c in settings.currencies.catalog}
        assert rates == {"USD": Decimal("320"), "EUR": Decimal("340"), "CUP": Decimal("1")}

    def test_container_defaults(self):
        percentages = get_settings().container.percentages()
        assert percentages.split.hard_currency == Decimal("91")
        assert percentages.split.fiscal == Decimal("5")
        assert percentages.split.cash == Decimal("4")
        assert percentages.shrinkage == Decimal("2")
        assert percentages.profit_margin == Decimal("4")
        assert percentages.levy_margin == Decimal("15")
        assert percentages.commercial_margin == Decimal("85")
        assert percentages.other_expenses == Decimal("10")

    def test_lot_and_distribution(self):
        settings = get_settings()
        assert settings.lot.fiscal_median == Decimal("173")
        assert settings.lot.pack_size == 24
        assert settings.distribution.business_weekdays == frozenset({0, 1, 2, 3, 4, 5})
        assert settings.distribution.variance == Decimal("0.20")

    def test_logs_load(self, captured_logs):
        get_settings()
        assert any(r["message"] == "settings_loaded" for r in captured_logs())


class TestOverrides:
    def test_partial_override_keeps_other_defaults(self, tmp_path):
        path = write_yaml(
            tmp_path / "override.yaml",
            {"container": {"shrinkage_percent": "3"}, "distribution": {"variance": "0.1"}},
        )
        settings = get_settings(path)
        assert settings.container.shrinkage_percent == Decimal("3")
        assert settings.container.fiscal_percent == Decimal("5")
        assert settings.distribution.variance == Decimal("0.1")
        assert settings.lot.pack_size == 24

    def test_catalog_replaced_whole(self, tmp_path):
        path = write_yaml(
            tmp_path / "override.yaml",
            {"currencies": {"catalog": [{"code": "USD", "default_rate": "300"}]}},
        )
        settings = get_settings(path)
        assert [c.code for c in settings.currencies.catalog] == ["USD"]
        assert settings.currencies.catalog[0].name == "USD"
        assert settings.currencies.local_currency == "CUP"

    def test_env_var(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path / "env.yaml", {"database_url": "sqlite:///other.db"})
        monkeypatch.setenv("IMPORTCOST_CONFIG", path)
        assert get_settings().database_url == "sqlite:///other.db"

    def test_weekday_names_and_numbers(self, tmp_path):
        path = write_yaml(
            tmp_path / "override.yaml",
            {"distribution": {"business_weekdays": ["Monday", 2, "friday"]}},
        )
        assert get_settings(path).distribution.business_weekdays == frozenset({0, 2, 4})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_settings(tmp_path / "absent.yaml")


class TestValidation:
    def test_split_must_sum_to_hundred(self, tmp_path):
        path = write_yaml(tmp_path / "bad.yaml", {"container": {"cash_percent": "10"}})
        with pytest.raises(ValueError, match="sum to 100"):
            get_settings(path)

    def test_percent_out_of_range(self):
        with pytest.raises(ValueError, match="shrinkage_percent"):
            ContainerDefaults(shrinkage_percent=Decimal("150"))

    def test_unknown_currency(self, tmp_path):
        path = write_yaml(tmp_path / "bad.yaml", {"currencies": {"local_currency": "XYZ"}})
        with pytest.raises(ValueError):
            get_settings(path)

    def test_variance_range(self):
        with pytest.raises(ValueError, match="variance"):
            DistributionSettings(variance=Decimal("1"))

    def test_unknown_weekday(self):
        with pytest.raises(ValueError, match="Unknown weekday"):
            parse_weekday("funday")


class TestMerge:
    def test_nested(self):
        merged = merge({"a": {"b": 1, "c": 2}, "d": [1, 2]}, {"a": {"c": 3}, "d": [9]})
        assert merged == {"a": {"b": 1, "c": 3}, "d": [9]}
