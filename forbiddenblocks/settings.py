"""
Global settings service for ForbiddenBlocks.

Holds the settings that do not depend on the current world or server: whether
chat feedback is shown and the key bindings. Settings are persisted to a
single JSON file on every change.
"""

import json
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from .exceptions import ConfigurationError, ErrorContext, PersistenceError
from .logging_config import get_logger
from .models.settings import ClientSettings, KeyBinding

logger = get_logger(__name__)

KEY_BINDING_FIELDS = {"forbid": "forbid_key", "toggle_messages": "toggle_messages_key"}


class SettingsService:
    """Loads, toggles and persists ClientSettings."""

    def __init__(self, settings_path: Path | str) -> None:
        self.settings_path = Path(settings_path)
        self._lock = threading.Lock()
        self._settings = self._load()
        logger.info("Settings initialized", settings_path=str(self.settings_path), show_messages=self._settings.show_messages)

    def get(self) -> ClientSettings:
        """Return a copy of the current settings."""
        with self._lock:
            return self._settings.model_copy(deep=True)

    def get_show_messages(self) -> bool:
        with self._lock:
            return self._settings.show_messages

    def set_show_messages(self, show_messages: bool) -> bool:
        with self._lock:
            self._settings = self._settings.model_copy(update={"show_messages": show_messages})
            return self._persist()

    def toggle_messages(self) -> bool:
        """
        Flip message visibility and persist it.

        Returns:
            The new show_messages value.
        """
        with self._lock:
            show_messages = not self._settings.show_messages
            self._settings = self._settings.model_copy(update={"show_messages": show_messages})
            self._persist()
        logger.info("Message visibility toggled", show_messages=show_messages)
        return show_messages

    def get_key_binding(self, name: str) -> KeyBinding:
        field_name = self._key_binding_field(name)
        with self._lock:
            return getattr(self._settings, field_name)

    def set_key_binding(self, name: str, key: str) -> KeyBinding:
        """Rebind a key and persist it."""
        field_name = self._key_binding_field(name)
        with self._lock:
            binding = getattr(self._settings, field_name).model_copy(update={"key": key})
            self._settings = self._settings.model_copy(update={field_name: binding})
            self._persist()
        logger.info("Key binding updated", binding=name, key=key)
        return binding

    def save(self) -> bool:
        with self._lock:
            return self._persist()

    def reload(self) -> ClientSettings:
        with self._lock:
            self._settings = self._load()
            return self._settings.model_copy(deep=True)

    @staticmethod
    def _key_binding_field(name: str) -> str:
        try:
            return KEY_BINDING_FIELDS[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown key binding: {name}",
                config_key=name,
                details={"valid_bindings": sorted(KEY_BINDING_FIELDS)},
            ) from None

    def _load(self) -> ClientSettings:
        """Read settings from disk, falling back to defaults."""
        if not self.settings_path.exists():
            logger.info("No settings file, using defaults", settings_path=str(self.settings_path))
            return ClientSettings()

        try:
            with self.settings_path.open("r", encoding="utf-8") as handle:
                return ClientSettings.model_validate(json.load(handle))
        except (OSError, ValueError, RecursionError, ValidationError) as e:
            logger.error(
                "Failed to load settings, using defaults",
                settings_path=str(self.settings_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return ClientSettings()

    def _persist(self) -> bool:
        """Write settings to disk; in-memory settings stay authoritative on failure. Caller holds the lock."""
        try:
            self._write_settings()
        except PersistenceError:
            return False
        logger.debug("Settings saved", settings_path=str(self.settings_path))
        return True

    def _write_settings(self) -> None:
        payload = self._settings.model_dump(by_alias=True)
        tmp_path: str | None = None
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(prefix=".settings_", suffix=".tmp", dir=str(self.settings_path.parent))
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.settings_path)
        except OSError as e:
            raise PersistenceError(
                f"Failed to persist settings: {e}",
                context=ErrorContext(file_path=str(self.settings_path), operation="save_settings"),
                operation="save_settings",
            ) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
