"""Durable user settings.

Settings live in a single JSON record stored under the ``"settings"`` key of a
small key/value storage backend. A missing or unreadable record is treated as
the defaults; read failures are logged and never reach the caller.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional

from .exceptions import StorageParseError, StorageWriteError


logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"


@dataclass(frozen=True)
class Settings:
    enabled: bool = False
    url: str = ""

    def merge(self, **changes: Any) -> "Settings":
        """Return a copy with ``changes`` applied.

        Unknown field names raise ``ValueError``; values of the wrong type
        raise ``TypeError``.
        """
        known = {f.name: f for f in fields(self)}
        for name, value in changes.items():
            if name not in known:
                raise ValueError(f"Unknown setting: {name}")
            expected = bool if name == "enabled" else str
            if not isinstance(value, expected):
                raise TypeError(f"Setting {name!r} expects {expected.__name__}, got {type(value).__name__}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_json(cls, raw: str) -> "Settings":
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StorageParseError(f"Invalid settings JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageParseError("Settings record is not a JSON object")

        enabled = data.get("enabled", False)
        url = data.get("url")
        if url is None:
            url = ""
        if not isinstance(enabled, bool) or not isinstance(url, str):
            raise StorageParseError("Settings record has invalid field types")
        return cls(enabled=enabled, url=url)


# -----------------------------
# Storage backends
# -----------------------------
class MemoryStorage:
    """In-process key/value storage, used by tests and the testing config."""

    def __init__(self, items: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """One UTF-8 file per key inside ``directory``; writes replace atomically."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove_item(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class SettingsStore:
    def __init__(self, storage, key: str = SETTINGS_KEY):
        self.storage = storage
        self.key = key
        # Guards read-modify-write within one process only
        self._lock = threading.Lock()

    def get(self) -> Settings:
        try:
            return self._read()
        except StorageParseError as exc:
            logger.warning("Falling back to default settings: %s", exc)
            return Settings()

    def set(self, **changes: Any) -> Settings:
        with self._lock:
            merged = self.get().merge(**changes)
            try:
                self.storage.set_item(self.key, json.dumps(merged.to_dict()))
            except OSError as exc:
                logger.error("Could not save settings: %s", exc)
                raise StorageWriteError(f"Could not save settings: {exc}") from exc
        logger.info("Settings updated: %s", ", ".join(sorted(changes)) or "(none)")
        return merged

    def _read(self) -> Settings:
        try:
            raw = self.storage.get_item(self.key)
        except (OSError, ValueError) as exc:
            raise StorageParseError(f"Could not read settings: {exc}") from exc
        if raw is None:
            return Settings()
        return Settings.from_json(raw)
