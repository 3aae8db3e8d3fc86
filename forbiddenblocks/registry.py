"""Operation surface of the forbidden-item registry used by the event layer."""

from .logging_config import get_logger
from .models.item import ItemIdentity
from .scope import ConnectionContext, ScopeResolver
from .store import ScopeStore, ScopeStoreRegistry

logger = get_logger(__name__)


class ForbiddenRegistry:
    """
    Query and toggle forbidden items per scope.

    Args:
        stores: Registry owning the live ScopeStore instances
        resolver: Tracks the scope of the current connection
    """

    def __init__(self, stores: ScopeStoreRegistry, resolver: ScopeResolver | None = None) -> None:
        self.stores = stores
        self.resolver = resolver or ScopeResolver()

    def resolve_scope(self, context: ConnectionContext | None = None) -> str:
        """Resolve the scope id for a connection and make sure its store is loaded."""
        scope_id = self.resolver.resolve(context)
        self.stores.open(scope_id)
        logger.debug("Resolved scope", scope_id=scope_id)
        return scope_id

    def current_store(self, context: ConnectionContext | None = None) -> ScopeStore:
        return self.stores.open(self.resolve_scope(context))

    def is_forbidden(self, identity: ItemIdentity | None, scope_id: str) -> bool:
        if identity is None:
            return False
        return self.stores.open(scope_id).is_forbidden(identity)

    def toggle(self, identity: ItemIdentity | None, scope_id: str) -> bool:
        """
        Toggle an item in a scope.

        Returns:
            Whether the item is forbidden after the toggle.
        """
        store = self.stores.open(scope_id)
        store.toggle(identity)
        return store.is_forbidden(identity)
