from pathlib import Path

from pydantic import ValidationError
import pytest

from objseg_service.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.kmeans_seed == 12345
    assert settings.luma_slack == 15
    assert settings.fill_alpha == 0.45
    assert settings.tint_alpha == 0.65
    assert settings.storage_backend == "local"
    assert settings.upload_dir == Path("uploads")
    assert (settings.min_region_size_min, settings.min_region_size_max) == (10, 5000)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("FILL_ALPHA", "0.3")
    monkeypatch.setenv("ALTERNATIVE_METHOD", "watershed")
    settings = Settings()
    assert settings.fill_alpha == 0.3
    assert settings.alternative_method == "watershed"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"fill_alpha": 1.5},
        {"tint_alpha": -0.1},
        {"accent_color": "blue"},
        {"storage_backend": "ftp"},
        {"alternative_method": "modnet"},
        {"min_image_side": 100, "max_image_side": 50},
        {"min_region_size_min": 100, "min_region_size_max": 10},
    ],
)
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        Settings(**kwargs)
