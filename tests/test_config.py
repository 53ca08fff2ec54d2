"""Unit tests for broker configuration."""

from relaybroker.config import BrokerConfig

_VARS = (
    "BROKER_HOST",
    "BROKER_PORT",
    "BROKER_WS_PATH",
    "BROKER_INDEX_FILE",
    "BROKER_DEBUG_ENDPOINTS",
    "LOG_LEVEL",
    "LOG_FILE",
)


def _clear(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)
    config = BrokerConfig.from_env(load_env_file=False)
    assert config.host == "0.0.0.0"
    assert config.port == 8000
    assert config.ws_path == "/"
    assert config.index_file is None
    assert config.debug_endpoints is True
    assert config.log_file is None


def test_environment_overrides(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("BROKER_PORT", "9100")
    monkeypatch.setenv("BROKER_WS_PATH", "ws")
    monkeypatch.setenv("BROKER_DEBUG_ENDPOINTS", "false")
    monkeypatch.setenv("BROKER_INDEX_FILE", "  ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = BrokerConfig.from_env(load_env_file=False)
    assert config.port == 9100
    assert config.ws_path == "/ws"
    assert config.debug_endpoints is False
    assert config.index_file is None
    assert config.log_level == "DEBUG"


def test_invalid_port_falls_back(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("BROKER_PORT", "eighty")
    assert BrokerConfig.from_env(load_env_file=False).port == 8000


def test_with_overrides_skips_none():
    config = BrokerConfig().with_overrides(port=1234, host=None)
    assert config.port == 1234
    assert config.host == "0.0.0.0"
    assert BrokerConfig().with_overrides(host=None) == BrokerConfig()
