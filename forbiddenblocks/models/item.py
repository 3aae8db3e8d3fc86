"""Item models for ForbiddenBlocks.

An ItemSnapshot is what the event layer hands over for the item in a player's
hand. An ItemIdentity is the stable, structural key derived from it and stored
in per-scope files.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

AIR_REGISTRY_ID = "minecraft:air"


class ItemIdentity(BaseModel):
    """Represents "this exact kind of item".

    Two identities are equal iff registry id, display name and components
    digest are all equal. The model is frozen, so identities are hashable and
    can live in sets.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    registry_id: str = Field(..., alias="registryId", description="Namespaced registry type name")
    name: str = Field(..., alias="name", description="Display name as currently rendered")
    components_json: str = Field(default="", alias="componentsJson", description="Canonical metadata digest")

    def to_record(self) -> dict[str, str]:
        """Flat record written into a scope file."""
        return self.model_dump(by_alias=True)

    def sort_key(self) -> tuple[str, str, str]:
        return (self.registry_id, self.name, self.components_json)

    def __str__(self) -> str:
        return f"ItemIdentity(registry_id={self.registry_id!r}, name={self.name!r}, components_json={self.components_json!r})"


@dataclass(frozen=True)
class OptionalValue:
    """Optional-wrapper metadata value; value None means the option is empty."""

    value: Any = None


@dataclass(frozen=True)
class RegistryReference:
    """Indirect reference to a registry entry.

    key is the registry key the reference points to, or None when the
    reference is unbound; raw is the underlying engine object, used for a
    textual fallback.
    """

    key: str | None
    raw: Any = None

    def __str__(self) -> str:
        if self.raw is not None:
            return str(self.raw)
        return "RegistryReference[unbound]"


@dataclass(frozen=True)
class ItemSnapshot:
    """The live item instance as seen by the event layer.

    registry_id is None when the engine has no registered type for the item.
    components maps each structured-metadata slot's stable type name to its
    raw value.
    """

    registry_id: str | None
    display_name: str
    count: int = 1
    components: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.count <= 0 or self.registry_id == AIR_REGISTRY_ID
