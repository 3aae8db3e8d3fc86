"""
Interaction decisions for ForbiddenBlocks.

The game's event layer calls InteractionDecider for every block use, entity
use, toggle key press and connection change. The decider resolves the scope,
derives the item identity, consults the registry and the bypass allowlist, and
returns a decision plus the chat text (if any) to show the player. Nothing
raised inside the core escapes these methods: on error the interaction is
allowed.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config.models import InteractionConfig
from .identity import build_item_identity
from .logging_config import get_logger
from .models.item import ItemIdentity, ItemSnapshot
from .registry import ForbiddenRegistry
from .scope import UNKNOWN_SCOPE, ConnectionContext
from .settings import SettingsService

logger = get_logger(__name__)

SWEET_BERRY_BUSH = "minecraft:sweet_berry_bush"
CAVE_VINES = ("minecraft:cave_vines", "minecraft:cave_vines_plant")
RIPE_BERRY_AGE = 3


class Hand(Enum):
    MAIN_HAND = "main_hand"
    OFF_HAND = "off_hand"


class TargetKind(Enum):
    BLOCK = "block"
    ENTITY = "entity"


@dataclass(frozen=True)
class InteractionTarget:
    """
    The block or entity being used.

    type_id is the registry id of the block/entity type; tags are the tags the
    event layer reports for it (e.g. "minecraft:doors"), including the
    synthetic "forbiddenblocks:block_entities" for blocks with a block entity
    and "forbiddenblocks:living" for living entities. state holds block-state
    properties such as "age" or "berries".
    """

    kind: TargetKind
    type_id: str
    display_name: str = ""
    tags: frozenset[str] = frozenset()
    state: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def block(cls, type_id: str, display_name: str = "", tags: Iterable[str] = (), state: Mapping[str, Any] | None = None):
        return cls(TargetKind.BLOCK, type_id, display_name or type_id, frozenset(tags), dict(state or {}))

    @classmethod
    def entity(cls, type_id: str, display_name: str = "", tags: Iterable[str] = ()):
        return cls(TargetKind.ENTITY, type_id, display_name or type_id, frozenset(tags))


@dataclass(frozen=True)
class InteractionDecision:
    forbidden: bool
    allowed: bool
    identity: ItemIdentity | None = None
    message: str | None = None


@dataclass(frozen=True)
class ToggleResult:
    now_forbidden: bool
    identity: ItemIdentity | None = None
    message: str | None = None


class InteractionAllowlist:
    """Targets that stay usable with a forbidden item in the main hand."""

    def __init__(
        self,
        block_entries: Iterable[str] = (),
        entity_entries: Iterable[str] = (),
        block_exclusions: Iterable[str] = (),
        harvest_ripe_crops: bool = True,
    ) -> None:
        self.block_entries = frozenset(block_entries)
        self.entity_entries = frozenset(entity_entries)
        self.block_exclusions = frozenset(block_exclusions)
        self.harvest_ripe_crops = harvest_ripe_crops

    @classmethod
    def from_config(cls, config: InteractionConfig) -> "InteractionAllowlist":
        return cls(
            block_entries=config.block_allowlist,
            entity_entries=config.entity_allowlist,
            block_exclusions=config.block_exclusions,
            harvest_ripe_crops=config.harvest_ripe_crops,
        )

    @staticmethod
    def _matches(entries: frozenset[str], target: InteractionTarget) -> bool:
        if target.type_id in entries:
            return True
        return any(f"#{tag}" in entries for tag in target.tags)

    def _is_ripe_crop(self, target: InteractionTarget) -> bool:
        if not self.harvest_ripe_crops:
            return False
        if target.type_id == SWEET_BERRY_BUSH:
            return target.state.get("age") == RIPE_BERRY_AGE
        if target.type_id in CAVE_VINES:
            return target.state.get("berries") is True
        return False

    def permits(self, target: InteractionTarget | None, hand: Hand) -> bool:
        """Whether using target with a forbidden item in hand is still allowed."""
        if target is None or hand is not Hand.MAIN_HAND:
            return False

        if target.kind is TargetKind.ENTITY:
            return self._matches(self.entity_entries, target)

        if self._matches(self.block_exclusions, target):
            return False
        return self._matches(self.block_entries, target) or self._is_ripe_crop(target)


class InteractionDecider:
    """Entry point for the event layer."""

    def __init__(
        self,
        registry: ForbiddenRegistry,
        settings: SettingsService,
        allowlist: InteractionAllowlist | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings
        self.allowlist = allowlist or InteractionAllowlist.from_config(InteractionConfig())

    def _message(self, text: str) -> str | None:
        return text if self.settings.get_show_messages() else None

    def on_interact_attempt(
        self,
        item: ItemSnapshot | None,
        context: ConnectionContext | None = None,
        target: InteractionTarget | None = None,
        hand: Hand = Hand.MAIN_HAND,
    ) -> InteractionDecision:
        """Decide whether a block/entity use with the item in hand may proceed."""
        if item is None or item.is_empty:
            return InteractionDecision(forbidden=False, allowed=True)

        try:
            identity = build_item_identity(item)
            if identity is None:
                logger.warning("Could not get item identity, allowing interaction", display_name=item.display_name)
                return InteractionDecision(forbidden=False, allowed=True)

            scope_id = self.registry.resolve_scope(context)
            forbidden = self.registry.is_forbidden(identity, scope_id)
            logger.debug(
                "Interaction attempt",
                scope_id=scope_id,
                item=identity.name,
                hand=hand.value,
                forbidden=forbidden,
                target=target.type_id if target else None,
            )
            if not forbidden:
                return InteractionDecision(forbidden=False, allowed=True, identity=identity)

            if self.allowlist.permits(target, hand):
                logger.info(
                    "Allowing interaction with allowlisted target",
                    item=identity.name,
                    target=target.type_id if target else None,
                )
                return InteractionDecision(forbidden=True, allowed=True, identity=identity)

            logger.info(
                "Blocked interaction with forbidden item",
                item=identity.name,
                registry_id=identity.registry_id,
                hand=hand.value,
                scope_id=scope_id,
                target=target.type_id if target else None,
            )
            return InteractionDecision(
                forbidden=True,
                allowed=False,
                identity=identity,
                message=self._message(self._blocked_text(identity, target)),
            )
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: gameplay decisions fail open
            logger.error("Error deciding interaction, allowing it", error=str(e), error_type=type(e).__name__)
            return InteractionDecision(forbidden=False, allowed=True)

    @staticmethod
    def _blocked_text(identity: ItemIdentity, target: InteractionTarget | None) -> str:
        if target is not None and target.kind is TargetKind.ENTITY:
            return f"Action with {identity.name} on {target.display_name} is blocked! (Client-Side)"
        return f"You cannot place {identity.name}! (Client-Side)"

    def on_toggle_request(self, item: ItemSnapshot | None, context: ConnectionContext | None = None) -> ToggleResult:
        """Forbid or allow the item in the main hand for the current scope."""
        if item is None or item.is_empty:
            return ToggleResult(now_forbidden=False, message="You must hold an item to forbid/allow it.")

        try:
            identity = build_item_identity(item)
            if identity is None:
                logger.warning("Could not get item identity for toggle", display_name=item.display_name)
                return ToggleResult(now_forbidden=False, message=f"Could not identify the item: {item.display_name}")

            scope_id = self.registry.resolve_scope(context)
            now_forbidden = self.registry.toggle(identity, scope_id)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: key handlers must never crash the client
            logger.error("Error toggling item", error=str(e), error_type=type(e).__name__)
            return ToggleResult(now_forbidden=False)

        if now_forbidden:
            text = f"{identity.name} is now forbidden to place. (Client-Side)"
        else:
            text = f"{identity.name} is now allowed again. (Client-Side)"
        return ToggleResult(now_forbidden=now_forbidden, identity=identity, message=self._message(text))

    def on_toggle_messages(self) -> str:
        """Flip message visibility; the feedback is always shown."""
        try:
            show_messages = self.settings.toggle_messages()
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: key handlers must never crash the client
            logger.error("Error toggling message visibility", error=str(e))
            show_messages = self.settings.get_show_messages()
        return "ForbiddenBlocks messages enabled" if show_messages else "ForbiddenBlocks messages disabled"

    def on_connection_change(self, context: ConnectionContext | None) -> str:
        """
        React to a join or disconnect.

        Returns:
            The scope id now in effect, "unknown" after a disconnect.
        """
        try:
            previous = self.registry.resolver.current_scope_id
            if self.registry.resolver.update_connection(context) is None:
                logger.info("Disconnected, no scope store to load", previous_scope_id=previous)
                return UNKNOWN_SCOPE
            scope_id = self.registry.resolve_scope(context)
            self.registry.stores.reload(scope_id)
            logger.info("Connection changed", previous_scope_id=previous, scope_id=scope_id)
            return scope_id
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: connection callbacks run on engine threads
            logger.error("Error handling connection change", error=str(e))
            return self.registry.resolver.resolve(None)

    def on_shutdown(self) -> None:
        logger.info("Client shutting down, saving scope stores")
        try:
            self.registry.stores.shutdown()
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: shutdown hooks must complete
            logger.error("Error saving scope stores at shutdown", error=str(e))
