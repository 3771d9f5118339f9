# tests/test_config.py
from pathlib import Path

from docledger.config import (
    DEFAULT_REGISTRY_ADDRESS,
    ENV_KEY_PATH,
    ENV_LEDGER,
    ENV_LOG_LEVEL,
    ClientConfig,
)


def test_defaults(monkeypatch):
    for name in (ENV_LEDGER, ENV_KEY_PATH, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)
    config = ClientConfig.resolve()
    assert config.ledger_uri.startswith("sqlite://")
    assert config.ledger_uri.endswith("devnet.db")
    assert config.key_path.name == "wallet.key"
    assert config.registry_address == DEFAULT_REGISTRY_ADDRESS
    assert config.log_level == "WARNING"


def test_env_overrides_default(monkeypatch, tmp_path):
    monkeypatch.setenv(ENV_LEDGER, "memory://")
    monkeypatch.setenv(ENV_KEY_PATH, str(tmp_path / "k.key"))
    monkeypatch.setenv(ENV_LOG_LEVEL, "debug")
    config = ClientConfig.resolve()
    assert config.ledger_uri == "memory://"
    assert config.key_path == tmp_path / "k.key"
    assert config.log_level == "DEBUG"


def test_flag_overrides_env(monkeypatch):
    monkeypatch.setenv(ENV_LEDGER, "memory://")
    config = ClientConfig.resolve(ledger="sqlite:///tmp/x.db", key_path=Path("~/k.key"))
    assert config.ledger_uri == "sqlite:///tmp/x.db"
    assert "~" not in str(config.key_path)
