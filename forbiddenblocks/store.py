"""
Per-scope forbidden-item storage for ForbiddenBlocks.

Each world or server gets one ScopeStore backed by a JSON file:

    config/forbiddenblocks/worlds/singleplayer_<world>.json
    config/forbiddenblocks/worlds/multiplayer_<address>.json

The file is a flat array of {registryId, name, componentsJson} records. Writes
go through a temp file and os.replace, so a reader never sees a truncated file.
Every mutation is saved before it returns.
"""

import json
import os
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .exceptions import ErrorContext, PersistenceError
from .logging_config import get_logger
from .models.item import ItemIdentity
from .scope import sanitize_file_name

logger = get_logger(__name__)

_RECORDS_ADAPTER = TypeAdapter(list[ItemIdentity])


def scope_file_path(worlds_dir: Path, scope_id: str) -> Path:
    """Backing file of a scope inside worlds_dir."""
    safe_scope_id = sanitize_file_name(scope_id)
    if safe_scope_id != scope_id:
        logger.debug("Sanitized scope id", scope_id=scope_id, safe_scope_id=safe_scope_id)
    return Path(worlds_dir) / f"{safe_scope_id}.json"


class ScopeStore:
    """Forbidden-item membership for exactly one world/server scope."""

    def __init__(self, scope_id: str, worlds_dir: Path, *, load: bool = True) -> None:
        self.scope_id = scope_id
        self.file_path = scope_file_path(worlds_dir, scope_id)
        self._lock = threading.RLock()
        self._forbidden_items: set[ItemIdentity] = set()
        self._dirty = False
        if load:
            self.load()

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty

    @property
    def forbidden_items(self) -> frozenset[ItemIdentity]:
        """Snapshot of the forbidden set."""
        with self._lock:
            return frozenset(self._forbidden_items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._forbidden_items)

    def __contains__(self, identity: object) -> bool:
        return isinstance(identity, ItemIdentity) and self.is_forbidden(identity)

    def __iter__(self) -> Iterator[ItemIdentity]:
        return iter(sorted(self.forbidden_items, key=ItemIdentity.sort_key))

    def is_forbidden(self, identity: ItemIdentity | None) -> bool:
        """Membership test; an unidentifiable item is never forbidden."""
        if identity is None:
            return False
        with self._lock:
            forbidden = identity in self._forbidden_items
        logger.debug("Checking if item is forbidden", scope_id=self.scope_id, identity=str(identity), forbidden=forbidden)
        return forbidden

    def toggle(self, identity: ItemIdentity | None) -> None:
        """
        Flip the forbidden state of an item and persist immediately.

        Callers re-query is_forbidden() to learn the new state.
        """
        if identity is None:
            logger.warning("Attempted to toggle null item identifier", scope_id=self.scope_id)
            return

        with self._lock:
            if identity in self._forbidden_items:
                self._forbidden_items.remove(identity)
                logger.info("Removed item from forbidden items", scope_id=self.scope_id, identity=str(identity))
            else:
                self._forbidden_items.add(identity)
                logger.info("Added item to forbidden items", scope_id=self.scope_id, identity=str(identity))
            self._dirty = True
            self.save()

    def clear(self) -> None:
        """Allow every item again in this scope."""
        with self._lock:
            if not self._forbidden_items:
                return
            logger.info("Clearing forbidden items", scope_id=self.scope_id, item_count=len(self._forbidden_items))
            self._forbidden_items.clear()
            self._dirty = True
            self.save()

    def load(self) -> bool:
        """
        Load the forbidden set from disk.

        A missing file is materialized as an empty list. A file that cannot be
        read or parsed leaves the in-memory set untouched.

        Returns:
            True if the in-memory set reflects the file afterwards.
        """
        with self._lock:
            logger.debug("Attempting to load scope store", scope_id=self.scope_id, file_path=str(self.file_path))

            if not self.file_path.exists():
                logger.info("No existing file for scope, creating it", scope_id=self.scope_id, file_path=str(self.file_path))
                self._dirty = True
                return self.save()

            try:
                items = self._read_items()
            except PersistenceError:
                return False

            self._forbidden_items = set(items)
            logger.info("Loaded forbidden items", scope_id=self.scope_id, item_count=len(self._forbidden_items))
            return True

    def save(self) -> bool:
        """
        Write the full forbidden set to disk if it has unsaved changes.

        Returns:
            True if nothing needed saving or the write succeeded. On failure the
            store stays dirty so the next save retries.
        """
        with self._lock:
            if not self._dirty:
                logger.debug("Not saving scope store as it is not dirty", scope_id=self.scope_id)
                return True

            records = [identity.to_record() for identity in sorted(self._forbidden_items, key=ItemIdentity.sort_key)]
            try:
                self._write_records(records)
            except PersistenceError:
                return False

            self._dirty = False
            logger.info(
                "Saved scope store",
                scope_id=self.scope_id,
                item_count=len(records),
                file_path=str(self.file_path),
            )
            return True

    def _read_items(self) -> list[ItemIdentity]:
        try:
            with self.file_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            if payload is None:
                # An empty "null" file carries no items
                return []
            return _RECORDS_ADAPTER.validate_python(payload)
        except (OSError, ValueError, RecursionError, ValidationError) as e:
            raise PersistenceError(
                f"Error loading scope store: {e}",
                context=ErrorContext(scope_id=self.scope_id, file_path=str(self.file_path), operation="load"),
                operation="load",
                details={"error_type": type(e).__name__},
            ) from e

    def _write_records(self, records: list[dict[str, str]]) -> None:
        tmp_path: str | None = None
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.file_path.stem}_", suffix=".tmp", dir=str(self.file_path.parent)
            )
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            raise PersistenceError(
                f"Error saving scope store: {e}",
                context=ErrorContext(scope_id=self.scope_id, file_path=str(self.file_path), operation="save"),
                operation="save",
                details={"error_type": type(e).__name__},
            ) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def __repr__(self) -> str:
        return f"ScopeStore(scope_id={self.scope_id!r}, file_path={str(self.file_path)!r})"


class ScopeStoreRegistry:
    """
    Owns the one live ScopeStore per scope id.

    Stores are created and loaded on first access. flush_all() saves every
    dirty store; it runs at shutdown.
    """

    def __init__(self, worlds_dir: Path | str) -> None:
        self.worlds_dir = Path(worlds_dir)
        self._lock = threading.Lock()
        self._stores: dict[str, ScopeStore] = {}
        self._closed = False

    def open(self, scope_id: str) -> ScopeStore:
        """Return the store for scope_id, creating and loading it if needed."""
        with self._lock:
            if self._closed:
                logger.info("Reopening scope store registry after shutdown")
                self._closed = False
            store = self._stores.get(scope_id)
            if store is None:
                logger.debug("Creating scope store", scope_id=scope_id)
                store = ScopeStore(scope_id, self.worlds_dir)
                self._stores[scope_id] = store
            return store

    def get(self, scope_id: str) -> ScopeStore | None:
        with self._lock:
            return self._stores.get(scope_id)

    def scope_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._stores)

    def reload(self, scope_id: str) -> ScopeStore:
        """Re-read a scope's file, opening the store first if needed."""
        with self._lock:
            existing = self._stores.get(scope_id)
        if existing is None:
            return self.open(scope_id)
        existing.load()
        return existing

    def flush_all(self) -> int:
        """
        Save every store.

        Returns:
            Number of stores whose save failed.
        """
        with self._lock:
            stores = list(self._stores.values())
        logger.info("Saving all scope stores", store_count=len(stores))
        failures = sum(1 for store in stores if not store.save())
        if failures:
            logger.error("Some scope stores could not be saved", failed_count=failures)
        return failures

    def shutdown(self) -> int:
        failures = self.flush_all()
        with self._lock:
            self._closed = True
        return failures

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed
