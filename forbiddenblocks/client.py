"""
Client wiring for ForbiddenBlocks.

Builds the registry, settings and interaction decider from the application
configuration and hooks the final flush into interpreter shutdown.

Usage:
    client = ForbiddenBlocksClient.create()
    client.install_shutdown_hook()
    decision = client.decider.on_interact_attempt(item, context, target)
"""

import atexit
from dataclasses import dataclass

from .config import AppConfig, get_config
from .interaction import InteractionAllowlist, InteractionDecider
from .logging_config import get_logger, setup_logging
from .registry import ForbiddenRegistry
from .scope import ScopeResolver
from .settings import SettingsService
from .store import ScopeStoreRegistry

logger = get_logger(__name__)


@dataclass
class ForbiddenBlocksClient:
    config: AppConfig
    registry: ForbiddenRegistry
    settings: SettingsService
    decider: InteractionDecider
    _shutdown_hook_installed: bool = False

    @classmethod
    def create(cls, config: AppConfig | None = None, *, configure_logging: bool = False) -> "ForbiddenBlocksClient":
        config = config or get_config()
        if configure_logging:
            setup_logging(config.model_dump())

        stores = ScopeStoreRegistry(config.storage.worlds_path)
        registry = ForbiddenRegistry(stores, ScopeResolver())
        settings = SettingsService(config.storage.settings_path)
        decider = InteractionDecider(registry, settings, InteractionAllowlist.from_config(config.interaction))

        logger.info(
            "ForbiddenBlocks client initialized",
            worlds_path=str(config.storage.worlds_path),
            settings_path=str(config.storage.settings_path),
        )
        return cls(config=config, registry=registry, settings=settings, decider=decider)

    def install_shutdown_hook(self) -> None:
        """Flush every scope store when the interpreter exits."""
        if self._shutdown_hook_installed:
            return
        atexit.register(self.decider.on_shutdown)
        self._shutdown_hook_installed = True

    def shutdown(self) -> None:
        self.decider.on_shutdown()
        if self._shutdown_hook_installed:
            atexit.unregister(self.decider.on_shutdown)
            self._shutdown_hook_installed = False
