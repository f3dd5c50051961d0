import json

import pytest

from relay.config import DEFAULT_SUPPORTED_TYPES, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PORT", "RELAY_PORT", "RELAY_SUPPORTED_TYPES", "RELAY_SUPPORTED_TYPES_FILE", "RELAY_PUBLIC_SCHEME"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()
    assert settings.port == 5000
    assert settings.public_scheme == "https"
    assert settings.allow_list().prefixes == tuple(DEFAULT_SUPPORTED_TYPES)


def test_port_falls_back_to_platform_variable(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert Settings().port == 8080


def test_supported_types_from_env(monkeypatch):
    monkeypatch.setenv("RELAY_SUPPORTED_TYPES", '["image/", "video/mp4"]')
    assert Settings().allow_list().prefixes == ("image/", "video/mp4")


def test_supported_types_file_wins(tmp_path):
    path = tmp_path / "supported_types.json"
    path.write_text(json.dumps(["audio/", "application/vnd.apple.mpegurl"]))
    settings = Settings(supported_types=["image/"], supported_types_file=path)
    assert settings.allow_list().prefixes == ("audio/", "application/vnd.apple.mpegurl")


def test_supported_types_file_must_be_a_list(tmp_path):
    path = tmp_path / "supported_types.json"
    path.write_text(json.dumps({"image": True}))
    with pytest.raises(ValueError):
        Settings(supported_types_file=path).allow_list()


def test_segment_pool_must_allow_connections():
    with pytest.raises(ValueError):
        Settings(segment_max_connections=0)
