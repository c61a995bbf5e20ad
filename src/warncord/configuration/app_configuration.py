from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from warncord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_RELATIVE_PATH = Path("config/app_config.yml")
DEFAULT_PRESENCE_TEXT = "for filtered words"


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches the contents of ``config/app_config.yml`` and exposes
    dictionary-like access helpers plus typed shortcuts for the keys Warncord
    reads. A missing or unreadable file yields an empty mapping, so every
    shortcut falls back to its default.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache (shallow reference). Callers
        should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    def database_path(self, base_dir: Path) -> Path:
        """Return the SQLite file path, resolved against ``base_dir`` when relative."""
        database = self._data.get("database", {})
        raw = database.get("path") if isinstance(database, dict) else None
        path = Path(str(raw)) if raw else Path("data/warncord.db")
        return path if path.is_absolute() else (base_dir / path)

    @property
    def default_filter_terms(self) -> List[Dict[str, Any]]:
        """Return the filter terms seeded into an empty term table.

        Entries that are not mappings with a non-empty ``term`` are dropped
        with a warning.
        """
        raw = self._data.get("default_filter_terms") or []
        if not isinstance(raw, list):
            logger.warning("[APP CONFIGURATION] default_filter_terms must be a list; ignoring it.")
            return []

        terms: List[Dict[str, Any]] = []
        for entry in raw:
            if isinstance(entry, dict) and str(entry.get("term") or "").strip():
                terms.append(entry)
            else:
                logger.warning("[APP CONFIGURATION] Skipping invalid default filter term entry: %r", entry)
        return terms

    @property
    def presence_text(self) -> str:
        """Return the "Watching ..." presence text shown by the bot."""
        value = self._data.get("presence_text") or DEFAULT_PRESENCE_TEXT
        return str(value)
