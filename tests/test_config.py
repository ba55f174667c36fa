"""Settings tests"""

from config import Settings, get_settings, reload_settings


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///paper_ledger.db"
    assert settings.is_sqlite
    assert settings.min_username_length == 3
    assert settings.min_password_length == 6
    assert settings.max_submit_attempts == 3


def test_environment_override(monkeypatch) -> None:
    monkeypatch.setenv("MAX_SUBMIT_ATTEMPTS", "5")
    monkeypatch.setenv("DATABASE_URL", "postgresql://ledger@localhost/ledger")

    settings = reload_settings()

    assert settings.max_submit_attempts == 5
    assert not settings.is_sqlite
    assert get_settings() is settings
