"""
Test configuration and fixtures for the ForbiddenBlocks test suite.

Every fixture that touches the filesystem is rooted at pytest's tmp_path so
tests never share scope files or settings.
"""

import os
from pathlib import Path

import pytest

os.environ.setdefault("FORBIDDENBLOCKS_LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("FORBIDDENBLOCKS_LOGGING_DISABLE_LOGGING", "true")

from forbiddenblocks.config.models import InteractionConfig  # noqa: E402
from forbiddenblocks.interaction import InteractionAllowlist, InteractionDecider  # noqa: E402
from forbiddenblocks.models.item import ItemIdentity, ItemSnapshot  # noqa: E402
from forbiddenblocks.registry import ForbiddenRegistry  # noqa: E402
from forbiddenblocks.scope import ScopeResolver  # noqa: E402
from forbiddenblocks.settings import SettingsService  # noqa: E402
from forbiddenblocks.store import ScopeStoreRegistry  # noqa: E402


@pytest.fixture
def worlds_dir(tmp_path: Path) -> Path:
    """Directory holding per-scope files for one test."""
    return tmp_path / "config" / "forbiddenblocks" / "worlds"


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "forbiddenblocks.json"


@pytest.fixture
def stores(worlds_dir: Path) -> ScopeStoreRegistry:
    return ScopeStoreRegistry(worlds_dir)


@pytest.fixture
def resolver() -> ScopeResolver:
    return ScopeResolver()


@pytest.fixture
def registry(stores: ScopeStoreRegistry, resolver: ScopeResolver) -> ForbiddenRegistry:
    return ForbiddenRegistry(stores, resolver)


@pytest.fixture
def settings_service(settings_path: Path) -> SettingsService:
    return SettingsService(settings_path)


@pytest.fixture
def decider(registry: ForbiddenRegistry, settings_service: SettingsService) -> InteractionDecider:
    return InteractionDecider(registry, settings_service, InteractionAllowlist.from_config(InteractionConfig()))


@pytest.fixture
def dirt_identity() -> ItemIdentity:
    return ItemIdentity(registry_id="minecraft:dirt", name="Dirt", components_json="")


@pytest.fixture
def dirt_snapshot() -> ItemSnapshot:
    return ItemSnapshot(registry_id="minecraft:dirt", display_name="Dirt", count=1, components={})


@pytest.fixture
def stone_snapshot() -> ItemSnapshot:
    return ItemSnapshot(registry_id="minecraft:stone", display_name="Stone", count=64, components={})
