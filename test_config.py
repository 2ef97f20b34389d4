#!/usr/bin/env python3
"""
Test explicit configuration requirements.
"""

import copy
import os
import tempfile

import pytest
import yaml

from gollum.config import ENV_BACKEND_URL, ENV_MODEL, ENV_PORT, Configuration

VALID_CONFIG = {
    "server": {"host": "127.0.0.1", "port": 8080},
    "backend": {
        "url": "http://localhost:11434/api/generate",
        "model": "llama2",
        "fragment_delay": 0.05,
        "timeout": None,
    },
    "websocket": {
        "path": "/ws",
        "allowed_origins": ["*"],
        "error_message": "Sorry, I encountered an error processing your request.",
    },
    "logging": {"level": "info"},
}


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in (ENV_BACKEND_URL, ENV_MODEL, ENV_PORT):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config():
    paths = []

    def _write(data):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(data, f)
            paths.append(f.name)
        return Configuration(f.name)

    yield _write

    for path in paths:
        os.unlink(path)


def with_changes(section, **values):
    config = copy.deepcopy(VALID_CONFIG)
    config[section].update(values)
    return config


def test_packaged_config_loads():
    """The shipped config.yaml passes validation."""
    config = Configuration()

    backend = config.get_backend_config()
    assert backend["model"] == "llama2"
    assert backend["url"] == "http://localhost:11434/api/generate"
    assert backend["fragment_delay"] == 0.05
    assert backend["timeout"] is None
    assert config.get_server_config()["port"] == 8080
    assert config.get_websocket_config()["allowed_origins"] == ["*"]


def test_valid_config(write_config):
    config = write_config(VALID_CONFIG)

    assert config.get_server_config() == {"host": "127.0.0.1", "port": 8080}
    assert config.get_websocket_config()["path"] == "/ws"
    assert config.get_logging_config()["level"] == "INFO"


def test_environment_overrides(write_config, monkeypatch):
    monkeypatch.setenv(ENV_BACKEND_URL, "http://gpu-box:11434/api/generate")
    monkeypatch.setenv(ENV_MODEL, "mistral")
    monkeypatch.setenv(ENV_PORT, "9090")
    config = write_config(VALID_CONFIG)

    backend = config.get_backend_config()
    assert backend["url"] == "http://gpu-box:11434/api/generate"
    assert backend["model"] == "mistral"
    assert config.get_server_config()["port"] == 9090


def test_accessors_do_not_mutate_loaded_config(write_config, monkeypatch):
    monkeypatch.setenv(ENV_MODEL, "mistral")
    config = write_config(VALID_CONFIG)

    config.get_backend_config()

    assert config.get_config_dict()["backend"]["model"] == "llama2"


def test_invalid_port_env(write_config, monkeypatch):
    monkeypatch.setenv(ENV_PORT, "eighty")
    config = write_config(VALID_CONFIG)

    with pytest.raises(ValueError, match="must be an integer"):
        config.get_server_config()


@pytest.mark.parametrize("section,key", [
    ("server", "port"),
    ("backend", "url"),
    ("backend", "model"),
    ("backend", "fragment_delay"),
    ("backend", "timeout"),
    ("websocket", "allowed_origins"),
    ("websocket", "error_message"),
])
def test_missing_key_requires_explicit_config(write_config, section, key):
    data = copy.deepcopy(VALID_CONFIG)
    del data[section][key]
    config = write_config(data)

    getter = {
        "server": config.get_server_config,
        "backend": config.get_backend_config,
        "websocket": config.get_websocket_config,
    }[section]
    with pytest.raises(ValueError, match=f"{section}.{key} must be explicitly configured"):
        getter()


def test_missing_section(write_config):
    data = copy.deepcopy(VALID_CONFIG)
    del data["backend"]
    config = write_config(data)

    with pytest.raises(ValueError, match="'backend' section"):
        config.get_backend_config()


@pytest.mark.parametrize("port", [0, 70000, "8080"])
def test_invalid_port(write_config, port):
    config = write_config(with_changes("server", port=port))
    with pytest.raises(ValueError, match="server.port"):
        config.get_server_config()


def test_empty_model(write_config):
    config = write_config(with_changes("backend", model=""))
    with pytest.raises(ValueError, match="backend.model"):
        config.get_backend_config()


def test_negative_fragment_delay(write_config):
    config = write_config(with_changes("backend", fragment_delay=-1))
    with pytest.raises(ValueError, match="fragment_delay"):
        config.get_backend_config()


def test_zero_fragment_delay_allowed(write_config):
    config = write_config(with_changes("backend", fragment_delay=0))
    assert config.get_backend_config()["fragment_delay"] == 0


@pytest.mark.parametrize("timeout", [0, -5, "soon"])
def test_invalid_timeout(write_config, timeout):
    config = write_config(with_changes("backend", timeout=timeout))
    with pytest.raises(ValueError, match="backend.timeout"):
        config.get_backend_config()


def test_positive_timeout_allowed(write_config):
    config = write_config(with_changes("backend", timeout=30))
    assert config.get_backend_config()["timeout"] == 30


def test_empty_origin_list(write_config):
    config = write_config(with_changes("websocket", allowed_origins=[]))
    with pytest.raises(ValueError, match="allowed_origins"):
        config.get_websocket_config()


def test_websocket_path_must_be_absolute(write_config):
    config = write_config(with_changes("websocket", path="ws"))
    with pytest.raises(ValueError, match="websocket.path"):
        config.get_websocket_config()


def test_invalid_log_level(write_config):
    config = write_config(with_changes("logging", level="chatty"))
    with pytest.raises(ValueError, match="logging.level"):
        config.get_logging_config()


def test_config_must_be_mapping(write_config):
    with pytest.raises(ValueError, match="must be YAML dict"):
        write_config(["not", "a", "mapping"])
