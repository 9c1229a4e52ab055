"""
Configuration Loader - YAML configuration and environment variables for the bridge

Example config.yaml:

    tool:
      command: ["npm", "run", "dev", "--"]
      working_dir: /path/to/propresenter-words
      env: {}
      timeout_seconds: 120
      kill_grace_seconds: 5
      strict_formats: false
    connection:
      host: 127.0.0.1
      port: 1025

Environment variable overrides:
    PROPRESENTER_HOST: default host
    PROPRESENTER_PORT: default port
"""
import copy
import os
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 1025
DEFAULT_TOOL_COMMAND = ["npm", "run", "dev", "--"]
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_KILL_GRACE_SECONDS = 5.0

DEFAULTS: Dict[str, Any] = {
    "tool": {
        "command": DEFAULT_TOOL_COMMAND,
        "working_dir": None,
        "env": {},
        "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
        "kill_grace_seconds": DEFAULT_KILL_GRACE_SECONDS,
        "strict_formats": False,
    },
    "connection": {
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class BridgeConfig:
    """Configuration manager for the Words bridge"""

    def __init__(self, config_path: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.config_path = config_path
        loaded = self._load_config() if config_path else {}
        self.config = _merge(_merge(DEFAULTS, loaded), data or {})
        self._validate_config()

    def _load_config(self) -> dict:
        """Load configuration from YAML file"""
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration root must be a mapping: {self.config_path}")
        return loaded

    def _validate_config(self):
        """Validate field types and ranges"""
        command = self.config["tool"].get("command")
        if isinstance(command, str):
            command = command.split()
            self.config["tool"]["command"] = command
        if not isinstance(command, list) or not command or not all(isinstance(c, str) and c for c in command):
            raise ConfigError("tool.command must be a non-empty list of strings")

        env = self.config["tool"].get("env") or {}
        if not isinstance(env, dict):
            raise ConfigError("tool.env must be a mapping")
        self.config["tool"]["env"] = env

        timeout = self.config["tool"].get("timeout_seconds")
        if timeout is not None and (not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0):
            raise ConfigError("tool.timeout_seconds must be a positive number or null")

        grace = self.config["tool"].get("kill_grace_seconds")
        if not isinstance(grace, (int, float)) or isinstance(grace, bool) or grace < 0:
            raise ConfigError("tool.kill_grace_seconds must be a non-negative number")

        # Resolve once so a bad PROPRESENTER_PORT fails at startup
        port = self.default_port
        if port < 0 or port > 65535:
            raise ConfigError(f"Default port out of range: {port}")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            section: Configuration section
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if section not in self.config:
            return default
        return self.config[section].get(key, default)

    @property
    def tool_command(self) -> List[str]:
        """Program plus leading arguments that every invocation starts with"""
        return list(self.config["tool"]["command"])

    @property
    def working_dir(self) -> Optional[str]:
        """Directory the tool runs in (None = inherit)"""
        return self.config["tool"].get("working_dir") or None

    @property
    def tool_env(self) -> Dict[str, str]:
        """Extra environment variables for the tool process"""
        return {str(k): str(v) for k, v in self.config["tool"]["env"].items()}

    @property
    def timeout_seconds(self) -> Optional[float]:
        """Upper bound on one invocation (None = wait forever)"""
        value = self.config["tool"].get("timeout_seconds")
        return float(value) if value is not None else None

    @property
    def kill_grace_seconds(self) -> float:
        """How long a stopped process gets between terminate and kill"""
        return float(self.config["tool"]["kill_grace_seconds"])

    @property
    def strict_formats(self) -> bool:
        """Reject unknown export formats instead of using the default export"""
        return bool(self.config["tool"].get("strict_formats", False))

    @property
    def default_host(self) -> str:
        """Get default ProPresenter host (with environment variable override)"""
        return os.getenv("PROPRESENTER_HOST") or str(self.config["connection"].get("host") or DEFAULT_HOST)

    @property
    def default_port(self) -> int:
        """Get default ProPresenter port (with environment variable override)"""
        raw = os.getenv("PROPRESENTER_PORT") or self.config["connection"].get("port", DEFAULT_PORT)
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid ProPresenter port: {raw!r}")
