"""Tests for scope resolution."""

import threading

import pytest

from forbiddenblocks.scope import (
    UNKNOWN_SCOPE,
    ConnectionContext,
    ScopeResolver,
    resolve_scope_id,
    sanitize_file_name,
)


class BrokenContext:
    """Connection context whose fields cannot be read."""

    @property
    def active(self):
        raise RuntimeError("connection handler already released")


class TestSanitizeFileName:
    def test_illegal_characters_replaced(self):
        assert sanitize_file_name('a\\b/c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"

    def test_legal_name_unchanged(self):
        assert sanitize_file_name("singleplayer_New World (1)") == "singleplayer_New World (1)"


class TestResolveScopeId:
    """Test mapping of live connections to scope ids."""

    def test_singleplayer_world(self):
        assert resolve_scope_id(ConnectionContext.for_world("Alpha")) == "singleplayer_Alpha"

    def test_singleplayer_without_world_name(self):
        assert resolve_scope_id(ConnectionContext.for_world(None)) == "singleplayer_unknown"

    def test_multiplayer_prefers_server_entry(self):
        context = ConnectionContext.for_server(server_address="example.com:25565", remote_address="/203.0.113.5:25565")
        assert resolve_scope_id(context) == "multiplayer_example.com_25565"

    def test_multiplayer_falls_back_to_remote_address(self):
        """The leading slash of the socket address is stripped and ':' replaced."""
        context = ConnectionContext.for_server(remote_address="/203.0.113.5:25565")
        assert resolve_scope_id(context) == "multiplayer_203.0.113.5_25565"

    def test_multiplayer_without_address(self):
        assert resolve_scope_id(ConnectionContext.for_server()) == "multiplayer_unknown"

    @pytest.mark.parametrize("context", [None, ConnectionContext.disconnected()])
    def test_no_live_connection(self, context):
        assert resolve_scope_id(context) is None

    def test_same_server_same_scope_across_reconnects(self):
        first = resolve_scope_id(ConnectionContext.for_server(server_address="mc.example.org"))
        second = resolve_scope_id(ConnectionContext.for_server(server_address="mc.example.org"))
        assert first == second


class TestScopeResolver:
    """Test the stateful resolver."""

    def test_unknown_before_any_connection(self):
        assert ScopeResolver().resolve() == UNKNOWN_SCOPE

    def test_live_context_wins(self):
        resolver = ScopeResolver()
        resolver.update_connection(ConnectionContext.for_world("Alpha"))

        assert resolver.resolve(ConnectionContext.for_world("Beta")) == "singleplayer_Beta"

    def test_cached_scope_used_without_context(self):
        """After a join, the cached scope serves lookups that have no context."""
        resolver = ScopeResolver()

        assert resolver.update_connection(ConnectionContext.for_server(server_address="example.com:25565")) == (
            "multiplayer_example.com_25565"
        )
        assert resolver.current_scope_id == "multiplayer_example.com_25565"
        assert resolver.resolve() == "multiplayer_example.com_25565"
        assert resolver.resolve(ConnectionContext.disconnected()) == "multiplayer_example.com_25565"

    @pytest.mark.parametrize("context", [None, ConnectionContext.disconnected()])
    def test_disconnect_clears_cache(self, context):
        resolver = ScopeResolver()
        resolver.update_connection(ConnectionContext.for_world("Alpha"))

        assert resolver.update_connection(context) is None
        assert resolver.current_scope_id is None
        assert resolver.resolve() == UNKNOWN_SCOPE

    def test_unreadable_context_falls_back(self):
        """Errors reading the context degrade to the cached scope."""
        resolver = ScopeResolver()
        resolver.update_connection(ConnectionContext.for_world("Alpha"))

        assert resolver.resolve(BrokenContext()) == "singleplayer_Alpha"

    def test_unreadable_context_without_cache_is_unknown(self):
        assert ScopeResolver().resolve(BrokenContext()) == UNKNOWN_SCOPE

    def test_concurrent_updates_leave_consistent_state(self):
        resolver = ScopeResolver()
        contexts = [ConnectionContext.for_world(f"World{i}") for i in range(20)]
        threads = [threading.Thread(target=resolver.update_connection, args=(context,)) for context in contexts]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert resolver.current_scope_id in {f"singleplayer_World{i}" for i in range(20)}
