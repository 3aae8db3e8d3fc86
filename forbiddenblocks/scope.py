"""
Scope resolution for ForbiddenBlocks.

A scope is the world (singleplayer) or server (multiplayer) under which a
forbidden-item list is tracked. Scope ids double as file names, so they are
derived deterministically from the connection and sanitized.
"""

import re
import threading
from dataclasses import dataclass

from .exceptions import ScopeResolutionError
from .logging_config import get_logger

logger = get_logger(__name__)

UNKNOWN_SCOPE = "unknown"
SINGLEPLAYER_PREFIX = "singleplayer_"
MULTIPLAYER_PREFIX = "multiplayer_"

_ILLEGAL_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


@dataclass(frozen=True)
class ConnectionContext:
    """
    What the event layer knows about the current connection.

    server_address is the address of the configured server entry, when the
    player joined through the server list; remote_address is the live
    socket address (e.g. "/203.0.113.5:25565") used as a fallback.
    """

    active: bool = True
    singleplayer: bool = False
    world_name: str | None = None
    server_address: str | None = None
    remote_address: str | None = None

    @classmethod
    def for_world(cls, world_name: str | None) -> "ConnectionContext":
        return cls(active=True, singleplayer=True, world_name=world_name)

    @classmethod
    def for_server(cls, server_address: str | None = None, remote_address: str | None = None) -> "ConnectionContext":
        return cls(active=True, singleplayer=False, server_address=server_address, remote_address=remote_address)

    @classmethod
    def disconnected(cls) -> "ConnectionContext":
        return cls(active=False)


def sanitize_file_name(value: str) -> str:
    """Replace characters that are illegal in file names with underscores."""
    return _ILLEGAL_FILENAME_CHARS.sub("_", value)


def _multiplayer_address(context: ConnectionContext) -> str:
    if context.server_address:
        logger.debug("Server info available", server_address=context.server_address)
        return context.server_address

    if context.remote_address:
        address = context.remote_address.lstrip("/")
        logger.debug("Using network connection address", remote_address=address)
        return address or UNKNOWN_SCOPE

    logger.warning("Could not determine server address, using unknown")
    return UNKNOWN_SCOPE


def resolve_scope_id(context: ConnectionContext | None) -> str | None:
    """
    Map a live connection to its scope id.

    Returns:
        "singleplayer_<world>" or "multiplayer_<address>" (":" replaced by "_"),
        or None when there is no live connection.
    """
    if context is None or not context.active:
        return None

    if context.singleplayer:
        return SINGLEPLAYER_PREFIX + (context.world_name or UNKNOWN_SCOPE)

    return MULTIPLAYER_PREFIX + _multiplayer_address(context).replace(":", "_")


class ScopeResolver:
    """
    Tracks the scope of the current connection.

    The last id set by a connect/disconnect transition is cached and used
    whenever the ambient context cannot be read.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current_scope_id: str | None = None

    @property
    def current_scope_id(self) -> str | None:
        with self._lock:
            return self._current_scope_id

    def update_connection(self, context: ConnectionContext | None) -> str | None:
        """
        Record a connection transition.

        A None or inactive context clears the cached scope id.

        Returns:
            The cached scope id after the update.
        """
        try:
            scope_id = self._resolve_live(context)
        except ScopeResolutionError:
            scope_id = None

        with self._lock:
            previous = self._current_scope_id
            self._current_scope_id = scope_id
        if scope_id is None:
            logger.info("Network connection closed, clearing connection ID", previous_scope_id=previous)
        else:
            logger.info("Updated connection", previous_scope_id=previous, scope_id=scope_id)
        return scope_id

    def resolve(self, context: ConnectionContext | None = None) -> str:
        """
        Resolve the scope id for the given (or cached) connection.

        Falls back to the cached id, then to "unknown". Never raises.
        """
        try:
            scope_id = self._resolve_live(context)
        except ScopeResolutionError:
            scope_id = None

        if scope_id is None:
            with self._lock:
                scope_id = self._current_scope_id
        return scope_id or UNKNOWN_SCOPE

    @staticmethod
    def _resolve_live(context: ConnectionContext | None) -> str | None:
        try:
            return resolve_scope_id(context)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: event-layer context objects are untrusted
            raise ScopeResolutionError(
                f"Error reading connection context: {e}",
                details={"error_type": type(e).__name__},
            ) from e
