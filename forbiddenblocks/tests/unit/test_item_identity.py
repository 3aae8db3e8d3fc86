"""
Tests for item identity construction.

Identities must be structural: equal item configurations give equal
identities no matter how their metadata was assembled, and one bad metadata
slot must not prevent an item from being identified.
"""

import json
from dataclasses import dataclass

import pytest
from pydantic import ValidationError

from forbiddenblocks.exceptions import ComponentSerializationError
from forbiddenblocks.identity import (
    build_components_json,
    build_item_identity,
    normalize_component_value,
    serialize_component,
)
from forbiddenblocks.models.item import ItemIdentity, ItemSnapshot, OptionalValue, RegistryReference


class Opaque:
    """Value without attributes the serializer could use."""

    __slots__ = ()


@dataclass
class Lore:
    lines: list[str]


class PlainComponent:
    def __init__(self, level: int) -> None:
        self.level = level
        self._cache = "ignored"


class TestItemIdentityModel:
    """Test the ItemIdentity value type."""

    def test_equality_is_structural(self):
        """Identities with equal fields are equal and hash alike."""
        a = ItemIdentity(registry_id="minecraft:dirt", name="Dirt", components_json="{}")
        b = ItemIdentity(registry_id="minecraft:dirt", name="Dirt", components_json="{}")

        assert a == b
        assert a is not b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    @pytest.mark.parametrize(
        "other",
        [
            ItemIdentity(registry_id="minecraft:stone", name="Dirt", components_json="{}"),
            ItemIdentity(registry_id="minecraft:dirt", name="Fancy Dirt", components_json="{}"),
            ItemIdentity(registry_id="minecraft:dirt", name="Dirt", components_json='{"minecraft:damage":1}'),
        ],
    )
    def test_any_field_difference_breaks_equality(self, other):
        """A difference in any one field makes identities unequal."""
        base = ItemIdentity(registry_id="minecraft:dirt", name="Dirt", components_json="{}")
        assert base != other

    def test_record_uses_file_field_names(self):
        """The flat record uses registryId/name/componentsJson keys."""
        identity = ItemIdentity(registry_id="minecraft:dirt", name="Dirt", components_json="{}")

        assert identity.to_record() == {"registryId": "minecraft:dirt", "name": "Dirt", "componentsJson": "{}"}
        assert ItemIdentity.model_validate(identity.to_record()) == identity

    def test_identity_is_immutable(self):
        """Assigning to a field is rejected."""
        identity = ItemIdentity(registry_id="minecraft:dirt", name="Dirt")
        with pytest.raises(ValidationError):
            identity.name = "Stone"


class TestNormalizeComponentValue:
    """Test metadata value normalization."""

    def test_direct_value_unchanged(self):
        assert normalize_component_value(3) == 3
        assert normalize_component_value("sharp1") == "sharp1"

    def test_optional_wrapper_unwrapped(self):
        """Optional-wrappers become their contents."""
        assert normalize_component_value(OptionalValue("Excalibur")) == "Excalibur"

    def test_empty_optional_becomes_none(self):
        assert normalize_component_value(OptionalValue()) is None

    def test_registry_reference_becomes_key(self):
        """Indirect references resolve to the key they point to."""
        reference = RegistryReference(key="minecraft:sharpness", raw=object())
        assert normalize_component_value(reference) == "minecraft:sharpness"

    def test_unbound_reference_uses_textual_form(self):
        """References without a key fall back to their textual representation."""
        reference = RegistryReference(key=None, raw="Reference{Direct}")
        assert normalize_component_value(reference) == "Reference{Direct}"

    def test_nested_wrappers_unwrapped(self):
        value = OptionalValue(RegistryReference(key="minecraft:plains"))
        assert normalize_component_value(value) == "minecraft:plains"

    def test_containers_normalized(self):
        value = {"enchantment": RegistryReference(key="minecraft:mending"), "levels": [OptionalValue(1), OptionalValue()]}
        assert normalize_component_value(value) == {"enchantment": "minecraft:mending", "levels": [1, None]}

    def test_sets_become_sorted_lists(self):
        assert normalize_component_value({"b", "a"}) == ["a", "b"]

    def test_never_raises_on_deep_nesting(self):
        """Wrappers nested beyond the depth limit degrade to a repr instead of raising."""
        value = "leaf"
        for _ in range(200):
            value = OptionalValue(value)

        result = normalize_component_value(value)

        assert isinstance(result, str)
        assert "OptionalValue" in result


class TestSerializeComponent:
    """Test conversion of normalized values into JSON trees."""

    def test_dataclass_serialized_by_fields(self):
        assert serialize_component("minecraft:lore", Lore(lines=["a", "b"])) == {"lines": ["a", "b"]}

    def test_plain_object_serialized_by_public_attributes(self):
        assert serialize_component("mod:level", PlainComponent(level=2)) == {"level": 2}

    def test_unserializable_value_raises(self):
        with pytest.raises(ComponentSerializationError) as exc_info:
            serialize_component("mod:opaque", Opaque())
        assert exc_info.value.component_type == "mod:opaque"


class TestBuildComponentsJson:
    """Test the canonical metadata digest."""

    def test_keys_sorted(self):
        digest = build_components_json({"minecraft:enchantments": "sharp1", "minecraft:damage": 3})
        assert digest == '{"minecraft:damage":3,"minecraft:enchantments":"sharp1"}'

    def test_nested_keys_sorted(self):
        first = build_components_json({"mod:data": {"b": 1, "a": 2}})
        second = build_components_json({"mod:data": {"a": 2, "b": 1}})
        assert first == second

    def test_null_component_recorded(self):
        """A present component without a value is kept as null."""
        assert build_components_json({"minecraft:custom_name": OptionalValue()}) == '{"minecraft:custom_name":null}'

    def test_failing_component_dropped(self):
        """One unserializable slot is omitted; the others remain."""
        digest = build_components_json({"minecraft:damage": 3, "mod:opaque": Opaque()})
        assert json.loads(digest) == {"minecraft:damage": 3}

    def test_components_without_type_name_skipped(self):
        assert json.loads(build_components_json({"": 1, "minecraft:damage": 2})) == {"minecraft:damage": 2}

    def test_empty_components(self):
        assert build_components_json({}) == "{}"


class TestBuildItemIdentity:
    """Test identity construction from item snapshots."""

    def test_builds_identity(self):
        snapshot = ItemSnapshot(registry_id="minecraft:diamond_sword", display_name="Sword", components={"minecraft:damage": 3})

        identity = build_item_identity(snapshot)

        assert identity == ItemIdentity(
            registry_id="minecraft:diamond_sword", name="Sword", components_json='{"minecraft:damage":3}'
        )

    def test_component_order_irrelevant(self):
        """Metadata inserted in a different order yields an equal identity."""
        first = ItemSnapshot("minecraft:diamond_sword", "Sword", components={"dmg": 3, "ench": "sharp1"})
        second = ItemSnapshot("minecraft:diamond_sword", "Sword", components={"ench": "sharp1", "dmg": 3})

        assert build_item_identity(first) == build_item_identity(second)

    def test_rename_changes_identity(self):
        """The rendered display name is part of the identity."""
        original = ItemSnapshot("minecraft:dirt", "Dirt")
        renamed = ItemSnapshot("minecraft:dirt", "Special Dirt")

        assert build_item_identity(original) != build_item_identity(renamed)

    def test_partial_serialization_failure_still_identifies(self):
        snapshot = ItemSnapshot("minecraft:stick", "Stick", components={"mod:opaque": Opaque(), "minecraft:damage": 1})

        identity = build_item_identity(snapshot)

        assert identity is not None
        assert identity.components_json == '{"minecraft:damage":1}'

    @pytest.mark.parametrize(
        "snapshot",
        [
            None,
            ItemSnapshot(registry_id="minecraft:dirt", display_name="Dirt", count=0),
            ItemSnapshot(registry_id="minecraft:air", display_name="Air"),
            ItemSnapshot(registry_id=None, display_name="Mystery"),
            ItemSnapshot(registry_id="", display_name="Mystery"),
        ],
    )
    def test_unidentifiable_items(self, snapshot):
        """Absent, empty and unregistered items have no identity."""
        assert build_item_identity(snapshot) is None
