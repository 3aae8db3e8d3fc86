"""Data models for ForbiddenBlocks."""

from .item import AIR_REGISTRY_ID, ItemIdentity, ItemSnapshot, OptionalValue, RegistryReference
from .settings import ClientSettings, KeyBinding

__all__ = [
    "AIR_REGISTRY_ID",
    "ClientSettings",
    "ItemIdentity",
    "ItemSnapshot",
    "KeyBinding",
    "OptionalValue",
    "RegistryReference",
]
