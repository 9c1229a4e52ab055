"""
Persistence for connection settings.
Remembers the last host/port, export format and playlist in the user config
directory so the front end can restore them after restart.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

from .commands import ExportFormat, MAX_PORT

APP_NAME = "ProPresenterWords"

logger = logging.getLogger(__name__)


@dataclass
class ConnectionSettings:
    """User-facing connection preferences."""

    host: str
    port: int
    export_format: str = ExportFormat.DEFAULT.value
    last_playlist_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(payload: Dict[str, Any], defaults: "ConnectionSettings") -> "ConnectionSettings":
        """Build settings from a stored dict, keeping defaults for bad or missing values."""
        host = payload.get("host")
        if not isinstance(host, str) or not host.strip():
            host = defaults.host

        port = payload.get("port")
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= MAX_PORT:
            port = defaults.port

        export_format = payload.get("export_format")
        if not isinstance(export_format, str):
            export_format = defaults.export_format

        last_playlist_id = payload.get("last_playlist_id")
        if last_playlist_id is not None and not isinstance(last_playlist_id, str):
            last_playlist_id = None

        return ConnectionSettings(
            host=host.strip(),
            port=port,
            export_format=export_format,
            last_playlist_id=last_playlist_id,
        )


class SettingsStore:
    """Load/save connection settings to disk."""

    def __init__(self, defaults: ConnectionSettings, path: Optional[Path] = None, app_name: str = APP_NAME):
        self.defaults = defaults
        self.app_name = app_name
        self.settings_path = Path(path) if path else self._resolve_path()

    def _resolve_path(self) -> Path:
        return Path(user_config_dir(self.app_name, self.app_name)) / "settings.json"

    def load(self) -> ConnectionSettings:
        """Load stored settings, falling back to defaults."""
        if not self.settings_path.exists():
            return ConnectionSettings(**asdict(self.defaults))
        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.settings_path, e)
            return ConnectionSettings(**asdict(self.defaults))

        if not isinstance(payload, dict):
            return ConnectionSettings(**asdict(self.defaults))
        return ConnectionSettings.from_dict(payload, self.defaults)

    def save(self, settings: ConnectionSettings) -> bool:
        """Persist settings. Returns False (and logs) if the write failed."""
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(settings.to_dict(), f, ensure_ascii=True, indent=2)
        except OSError as e:
            # Persistence failures should never crash the UI.
            logger.warning("Could not save settings to %s: %s", self.settings_path, e)
            return False
        return True

    def update(self, **changes: Any) -> ConnectionSettings:
        """Merge ``changes`` into the stored settings and save the result."""
        known = {f.name for f in fields(ConnectionSettings)}
        unknown = set(changes) - known
        if unknown:
            raise KeyError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

        current = self.load().to_dict()
        current.update({k: v for k, v in changes.items() if v is not None})
        updated = ConnectionSettings.from_dict(current, self.defaults)
        self.save(updated)
        return updated
