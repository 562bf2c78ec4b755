import pytest
from pydantic import ValidationError

from superorder.core.config import Settings


def test_defaults():
    config = Settings()
    assert config.ORACLE_HEARTBEAT_SECONDS == 4 * 3600
    assert config.TWAP_FAST_WINDOW_SECONDS == 120
    assert config.TWAP_WINDOW_SECONDS == 300
    assert config.KEEPER_MAX_FEE is None
    assert config.PERMISSIONLESS_REVEAL is False


def test_fast_window_must_be_shorter_than_window():
    with pytest.raises(ValidationError):
        Settings(TWAP_FAST_WINDOW_SECONDS=300, TWAP_WINDOW_SECONDS=300)


def test_delay_cannot_exceed_maximum():
    with pytest.raises(ValidationError):
        Settings(OCO_CANCELLATION_DELAY_SECONDS=100, OCO_MAX_CANCELLATION_DELAY_SECONDS=50)


def test_load_from_env(monkeypatch):
    monkeypatch.setenv("TWAP_FAST_WINDOW_SECONDS", "60")
    monkeypatch.setenv("TWAP_WINDOW_SECONDS", "600")
    monkeypatch.setenv("KEEPER_OPEN_ACCESS", "true")
    monkeypatch.setenv("KEEPER_MAX_FEE", "1000")
    monkeypatch.setenv("PERMISSIONLESS_REVEAL", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = Settings.load_from_env()
    assert config.TWAP_FAST_WINDOW_SECONDS == 60
    assert config.TWAP_WINDOW_SECONDS == 600
    assert config.KEEPER_OPEN_ACCESS is True
    assert config.KEEPER_MAX_FEE == 1000
    assert config.PERMISSIONLESS_REVEAL is False
    assert config.LOG_LEVEL == "DEBUG"


def test_load_from_env_rejects_bad_windows(monkeypatch):
    monkeypatch.setenv("TWAP_FAST_WINDOW_SECONDS", "900")
    with pytest.raises(ValidationError):
        Settings.load_from_env()
