from pathlib import Path

import pytest
from pydantic import ValidationError

from shopdesk.core.config import AppSettings


def test_allowed_origins_accept_comma_separated_values():
    settings = AppSettings(ALLOWED_ORIGINS="https://shop.example, http://localhost:3000 ,")
    assert settings.ALLOWED_ORIGINS == ["https://shop.example", "http://localhost:3000"]
    assert AppSettings(ALLOWED_ORIGINS="").ALLOWED_ORIGINS == []


def test_database_url_falls_back_to_data_dir(tmp_path):
    settings = AppSettings(DATABASE_URL="", DATA_DIR=tmp_path)
    assert settings.database_url == f"sqlite:///{tmp_path / 'shopdesk.db'}"
    assert AppSettings(DATABASE_URL="postgresql://shop@db/shop").database_url == "postgresql://shop@db/shop"


def test_templates_dir_defaults_inside_package():
    settings = AppSettings()
    assert settings.templates_dir == Path(settings.BASE_DIR) / "templates"
    assert (settings.templates_dir / "warranty_certificate.txt").exists()


def test_thresholds_must_not_be_negative():
    with pytest.raises(ValidationError):
        AppSettings(LOW_STOCK_THRESHOLD=-1)
