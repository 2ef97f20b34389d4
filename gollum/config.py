"""Configuration management for the Gollum bridge."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

# Environment variables that override config.yaml values
ENV_BACKEND_URL = "GOLLUM_BACKEND_URL"
ENV_MODEL = "GOLLUM_MODEL"
ENV_PORT = "GOLLUM_PORT"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
MAX_PORT = 65535


class Configuration:
    """Manages configuration and environment variables for the bridge."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables.

        Args:
            config_path: YAML file to load; defaults to config.yaml next to
                this module.
        """
        self.load_env()
        self.config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary.

        Returns:
            The complete configuration dictionary.
        """
        return self._config

    def _get_section(self, name: str, required_keys: list[str]) -> dict[str, Any]:
        """Return a copy of a config section after checking required keys."""
        section = self._config.get(name)
        if not isinstance(section, dict):
            raise ValueError(f"'{name}' section must be configured in config.yaml")

        for key in required_keys:
            if key not in section:
                raise ValueError(
                    f"{name}.{key} must be explicitly configured in config.yaml"
                )

        return {**section}

    def get_server_config(self) -> dict[str, Any]:
        """Get HTTP server configuration.

        Returns:
            Server configuration dictionary with host and port.

        Raises:
            ValueError: If host or port are missing or invalid.
        """
        server_config = self._get_section("server", ["host", "port"])

        env_port = os.getenv(ENV_PORT)
        if env_port:
            try:
                server_config["port"] = int(env_port)
            except ValueError as e:
                raise ValueError(f"{ENV_PORT} must be an integer, got '{env_port}'") from e

        port = server_config["port"]
        if not isinstance(port, int) or not 0 < port <= MAX_PORT:
            raise ValueError(f"server.port must be between 1 and {MAX_PORT}")

        return server_config

    def get_backend_config(self) -> dict[str, Any]:
        """Get generation backend configuration.

        Returns:
            Backend configuration dictionary with url, model, fragment_delay
            and timeout (None disables the timeout).

        Raises:
            ValueError: If required backend parameters are missing or invalid.
        """
        backend_config = self._get_section(
            "backend", ["url", "model", "fragment_delay", "timeout"]
        )

        backend_config["url"] = os.getenv(ENV_BACKEND_URL) or backend_config["url"]
        backend_config["model"] = os.getenv(ENV_MODEL) or backend_config["model"]

        if not isinstance(backend_config["url"], str) or not backend_config["url"]:
            raise ValueError("backend.url must be a non-empty string")
        if not isinstance(backend_config["model"], str) or not backend_config["model"]:
            raise ValueError("backend.model must be a non-empty string")

        delay = backend_config["fragment_delay"]
        if not isinstance(delay, int | float) or delay < 0:
            raise ValueError("backend.fragment_delay must be a non-negative number")

        timeout = backend_config["timeout"]
        if timeout is not None and (not isinstance(timeout, int | float) or timeout <= 0):
            raise ValueError("backend.timeout must be positive or null")

        return backend_config

    def get_websocket_config(self) -> dict[str, Any]:
        """Get WebSocket endpoint configuration.

        Returns:
            WebSocket configuration dictionary.

        Raises:
            ValueError: If path, allowed_origins or error_message are invalid.
        """
        websocket_config = self._get_section(
            "websocket", ["path", "allowed_origins", "error_message"]
        )

        path = websocket_config["path"]
        if not isinstance(path, str) or not path.startswith("/"):
            raise ValueError("websocket.path must start with '/'")

        origins = websocket_config["allowed_origins"]
        if not isinstance(origins, list) or not origins:
            raise ValueError(
                "websocket.allowed_origins must be a non-empty list "
                "(use ['*'] to accept any origin)"
            )

        if not isinstance(websocket_config["error_message"], str):
            raise ValueError("websocket.error_message must be a string")

        return websocket_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        logging_config = {**self._config.get("logging", {})}
        level = str(logging_config.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {VALID_LOG_LEVELS}")
        logging_config["level"] = level
        return logging_config
