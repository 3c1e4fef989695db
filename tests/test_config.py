from pathlib import Path

import pytest

from src.magister.config import Settings


def test_settings_read_magister_environment(monkeypatch):
    monkeypatch.setenv("MAGISTER_SCHOOL", "myschool.magister.net")
    monkeypatch.setenv("MAGISTER_USER", "jan")
    monkeypatch.setenv("MAGISTER_PASS", "geheim")
    monkeypatch.setenv("MAGISTER_CACHE_PATH", "/tmp/cache.json")
    monkeypatch.setenv("MAGISTER_HEADLESS", "false")

    settings = Settings(_env_file=None)
    config = settings.client_config()

    assert config.school_host == "myschool.magister.net"
    assert config.username == "jan"
    assert config.password.get_secret_value() == "geheim"
    assert settings.cache_path == Path("/tmp/cache.json")
    assert settings.headless is False


def test_missing_credentials_are_reported(monkeypatch):
    for name in ("MAGISTER_SCHOOL", "MAGISTER_USER", "MAGISTER_PASS", "MAGISTER_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MAGISTER_SCHOOL", "myschool")

    with pytest.raises(ValueError, match="MAGISTER_USER, MAGISTER_PASS"):
        Settings(_env_file=None).client_config()


def test_password_never_shows_in_repr():
    settings = Settings(_env_file=None, school="s", user="u", password="geheim")

    assert "geheim" not in repr(settings)
    assert "geheim" not in repr(settings.client_config())
