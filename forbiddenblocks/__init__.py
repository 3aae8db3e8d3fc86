"""
ForbiddenBlocks: per-world forbidden-item registry.

Players flag items as forbidden for the world or server they are playing on;
the event layer asks this package whether an interaction with the item in hand
may proceed.
"""

from .client import ForbiddenBlocksClient
from .identity import build_item_identity
from .interaction import Hand, InteractionDecider, InteractionDecision, InteractionTarget, ToggleResult
from .models import ItemIdentity, ItemSnapshot, OptionalValue, RegistryReference
from .registry import ForbiddenRegistry
from .scope import ConnectionContext, ScopeResolver
from .settings import SettingsService
from .store import ScopeStore, ScopeStoreRegistry

__version__ = "1.0.0"

__all__ = [
    "ConnectionContext",
    "ForbiddenBlocksClient",
    "ForbiddenRegistry",
    "Hand",
    "InteractionDecider",
    "InteractionDecision",
    "InteractionTarget",
    "ItemIdentity",
    "ItemSnapshot",
    "OptionalValue",
    "RegistryReference",
    "ScopeResolver",
    "ScopeStore",
    "ScopeStoreRegistry",
    "SettingsService",
    "ToggleResult",
    "build_item_identity",
]
