"""
Item identity construction for ForbiddenBlocks.

Turns the item in a player's hand into an ItemIdentity. Structured metadata is
normalized (optional-wrappers and registry references unwrapped), converted to
plain JSON values and serialized with sorted keys, so identical items always
produce identical digests no matter in which order their components were
attached.
"""

import json
from collections.abc import Mapping
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from .exceptions import ComponentSerializationError, ErrorContext, ItemIdentificationError
from .logging_config import get_logger
from .models.item import ItemIdentity, ItemSnapshot, OptionalValue, RegistryReference

logger = get_logger(__name__)

# Bounds unwrapping of self-referencing wrappers
MAX_NORMALIZE_DEPTH = 64


def _normalize(raw: Any, depth: int) -> Any:
    if depth > MAX_NORMALIZE_DEPTH:
        raise RecursionError("metadata value nested too deeply")

    if isinstance(raw, OptionalValue):
        return None if raw.value is None else _normalize(raw.value, depth + 1)

    if isinstance(raw, RegistryReference):
        if raw.key is not None:
            return raw.key
        logger.warning("Registry reference has no key, using its textual form", reference=str(raw))
        return str(raw)

    if isinstance(raw, Mapping):
        return {key: _normalize(value, depth + 1) for key, value in raw.items()}

    if isinstance(raw, list | tuple):
        return [_normalize(value, depth + 1) for value in raw]

    if isinstance(raw, set | frozenset):
        normalized = [_normalize(value, depth + 1) for value in raw]
        try:
            return sorted(normalized)
        except TypeError:
            return sorted(normalized, key=repr)

    return raw


def normalize_component_value(raw: Any) -> Any:
    """
    Normalize a raw metadata value into something JSON-serializable.

    Optional-wrappers become their contents (or None when empty), registry
    references become the key they point to, or their textual form when the
    key cannot be resolved. Containers are normalized element by element.

    This function never raises: a value that cannot be normalized is replaced
    by its repr.
    """
    try:
        return _normalize(raw, 0)
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: normalization must be total
        fallback = object.__repr__(raw)
        logger.warning("Failed to normalize metadata value, using repr", error=str(e), fallback=fallback)
        return fallback


def _object_fallback(value: Any) -> Any:
    """Serialize plain objects through their attributes."""
    attributes = getattr(value, "__dict__", None)
    if attributes is None:
        raise TypeError(f"Object of type {type(value).__name__} is not serializable")
    return {key: item for key, item in attributes.items() if not key.startswith("_")}


def serialize_component(component_type: str, value: Any) -> Any:
    """
    Convert a normalized metadata value into a JSON tree.

    Raises:
        ComponentSerializationError: If the value cannot be represented as JSON
    """
    try:
        tree = to_jsonable_python(value, fallback=_object_fallback)
        # Catches trees json cannot encode with sorted keys (e.g. mixed key types)
        json.dumps(tree, sort_keys=True)
        return tree
    except (PydanticSerializationError, TypeError, ValueError, RecursionError) as e:
        raise ComponentSerializationError(
            f"Failed to serialize component {component_type}: {e}",
            component_type=component_type,
            details={"value_type": type(value).__name__},
        ) from e


def build_components_json(components: Mapping[str, Any], registry_id: str | None = None) -> str:
    """
    Build the canonical metadata digest for an item.

    Components whose type name is missing or whose value cannot be serialized
    are left out of the digest.
    """
    component_map: dict[str, Any] = {}
    for component_type, raw_value in components.items():
        if not isinstance(component_type, str) or not component_type:
            logger.warning("Component has no type name, skipping", component_type=repr(component_type), registry_id=registry_id)
            continue

        value = normalize_component_value(raw_value)
        if value is None:
            logger.debug("Component present with null value", component_type=component_type, registry_id=registry_id)
            component_map[component_type] = None
            continue

        try:
            component_map[component_type] = serialize_component(component_type, value)
        except ComponentSerializationError:
            logger.error("Dropping component from identity", component_type=component_type, registry_id=registry_id)

    return json.dumps(component_map, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _require_identifiable(snapshot: ItemSnapshot | None) -> ItemSnapshot:
    if snapshot is None or snapshot.is_empty:
        raise ItemIdentificationError("Attempted to get identifier for null/empty stack")
    if not snapshot.registry_id:
        raise ItemIdentificationError(
            "Item has no registry ID",
            context=ErrorContext(operation="build_item_identity"),
            details={"display_name": snapshot.display_name},
        )
    return snapshot


def build_item_identity(snapshot: ItemSnapshot | None) -> ItemIdentity | None:
    """
    Derive the ItemIdentity for the item in hand.

    Returns:
        The identity, or None when the item is absent, empty, or has no
        registered type.
    """
    try:
        snapshot = _require_identifiable(snapshot)
        components_json = build_components_json(snapshot.components, snapshot.registry_id)
        identity = ItemIdentity(
            registry_id=snapshot.registry_id,
            name=snapshot.display_name,
            components_json=components_json,
        )
    except ItemIdentificationError:
        return None
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: identity lookups must fail open
        logger.error("Error getting item identifier", error=str(e), error_type=type(e).__name__)
        return None

    logger.debug("Created item identity", identity=str(identity))
    return identity
