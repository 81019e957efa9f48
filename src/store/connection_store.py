"""
Connection store: local mirror of configured connections and their keys.

Covers three concerns over one state snapshot:
- connection registry (list, create, update, remove)
- key cache and expansion (per-connection key lists, patterns, loading flags)
- key detail editing (the single selected key slot)

Every backend call is a suspension point. Local state for remove/update
changes only after the backend call succeeded. Concurrent toggles are not
fenced: whichever round-trip resolves last wins. A key listing that
resolves after its connection was removed is dropped.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from src.backend.service import BackendService
from src.shared.config import DEFAULT_KEY_PATTERN
from src.shared.errors import StaleReferenceError, StoreError
from src.shared.notifications import LoggingNotifier, NotificationKind, Notifier
from src.store.base import SnapshotStore
from src.store.models import Connection, KeyDetail

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot of the connection store."""
    connections: tuple[Connection, ...] = ()
    selected_connection: Optional[Connection] = None
    selected_key: Optional[KeyDetail] = None
    selected_key_connection_id: Optional[int] = None
    is_loading: bool = False
    error: Optional[StoreError] = None
    connection_keys: dict[int, list[str]] = field(default_factory=dict)
    loading_keys: dict[int, bool] = field(default_factory=dict)
    expanded_connections: frozenset[int] = frozenset()
    key_pattern: dict[int, str] = field(default_factory=dict)

    def get_connection(self, connection_id: int) -> Optional[Connection]:
        return next((c for c in self.connections if c.id == connection_id), None)

    def is_expanded(self, connection_id: int) -> bool:
        return connection_id in self.expanded_connections

    def is_loading_keys(self, connection_id: int) -> bool:
        return self.loading_keys.get(connection_id, False)

    def keys_for(self, connection_id: int) -> list[str]:
        return list(self.connection_keys.get(connection_id, []))


def _without(mapping: dict, key) -> dict:
    return {k: v for k, v in mapping.items() if k != key}


class ConnectionStore(SnapshotStore[ConnectionState]):
    """
    Connection registry, key cache and key detail editor.

    Failure policy:
    - reads (fetch/refresh connections) record the error and keep prior data
    - mutations record the error and emit an error notification, never raise
    - fetch_keys re-raises after clearing its loading flag
    """

    def __init__(
        self,
        backend: BackendService,
        notifier: Optional[Notifier] = None,
        default_pattern: str = DEFAULT_KEY_PATTERN,
    ):
        super().__init__(ConnectionState())
        self.backend = backend
        self.notifier = notifier or LoggingNotifier()
        self.default_pattern = default_pattern
        self._key_request_seq = 0

    # ------------------------------------------------------------ helpers
    def _success(self, message: str, title: str = "Success") -> None:
        self.notifier.notify(NotificationKind.SUCCESS, title, message)

    def _failure(self, error: Exception, action: str) -> None:
        """Record a failed mutation and tell the user."""
        store_error = StoreError.from_exception(error)
        log.warning("%s: %s", action, store_error.message)
        self._commit(error=store_error)
        self.notifier.notify(NotificationKind.ERROR, "Error", f"{action}: {store_error.message}")

    def _require_connection(self, connection_id: int) -> Connection:
        connection = self._state.get_connection(connection_id)
        if connection is None:
            raise StaleReferenceError(connection_id)
        return connection

    def _loading(self, connection_id: int, flag: bool) -> dict[int, bool]:
        return {**self._state.loading_keys, connection_id: flag}

    def _is_gone(self, connection_id: int) -> bool:
        """True when the connection left the registry while a call was pending."""
        if self._state.get_connection(connection_id) is not None:
            return False
        log.info("Dropping result for removed connection %d", connection_id)
        self._commit(loading_keys=_without(self._state.loading_keys, connection_id))
        return True

    def _pattern_for(self, connection_id: int) -> str:
        return self._state.key_pattern.get(connection_id) or self.default_pattern

    def _next_key_request(self) -> int:
        self._key_request_seq += 1
        return self._key_request_seq

    def _commit_connections(self, connections: list[Connection]) -> None:
        """
        Replace the list and drop everything cached for vanished connections.

        A selected connection still present is re-pointed at its fresh entry.
        """
        by_id = {c.id: c for c in connections}
        ids = by_id.keys()
        state = self._state
        changes = {
            "connections": tuple(connections),
            "is_loading": False,
            "connection_keys": {k: v for k, v in state.connection_keys.items() if k in ids},
            "loading_keys": {k: v for k, v in state.loading_keys.items() if k in ids},
            "key_pattern": {k: v for k, v in state.key_pattern.items() if k in ids},
            "expanded_connections": frozenset(i for i in state.expanded_connections if i in ids),
        }
        if state.selected_connection is not None:
            changes["selected_connection"] = by_id.get(state.selected_connection.id)
        if state.selected_key_connection_id is not None and state.selected_key_connection_id not in ids:
            self._next_key_request()
            changes["selected_key"] = None
            changes["selected_key_connection_id"] = None
        self._commit(**changes)

    # ------------------------------------------------------- registry
    async def fetch_connections(self) -> None:
        """Load the connection list from the backend."""
        self._commit(is_loading=True, error=None)
        try:
            connections = await self.backend.list_connections()
        except Exception as e:
            log.warning("Failed to fetch connections: %s", e)
            self._commit(error=StoreError.from_exception(e), is_loading=False)
            return
        self._commit_connections(connections)

    async def refresh_connections(self) -> None:
        """
        Reload connections and reconnect every expanded one.

        Each expanded connection is reconnected and its keys re-listed with
        its remembered pattern. A connection that fails is collapsed; the
        others are still refreshed.
        """
        self._commit(is_loading=True, error=None)
        try:
            connections = await self.backend.list_connections()
        except Exception as e:
            log.warning("Failed to refresh connections: %s", e)
            self._commit(error=StoreError.from_exception(e), is_loading=False)
            return

        by_id = {c.id: c for c in connections}
        for connection_id in sorted(self._state.expanded_connections):
            connection = by_id.get(connection_id)
            if connection is None:
                # dropped with the rest of its cache by _commit_connections
                continue
            try:
                await self.backend.connect(connection_id, connection.uri)
                keys = await self.backend.list_keys(connection_id, self._pattern_for(connection_id))
            except Exception as e:
                log.warning("Failed to refresh connection %d: %s", connection_id, e)
                self._commit(expanded_connections=self._state.expanded_connections - {connection_id})
                continue
            self._commit(connection_keys={**self._state.connection_keys, connection_id: list(keys)})

        self._commit_connections(connections)

    def set_selected_connection(self, connection: Optional[Connection]) -> None:
        self._commit(selected_connection=connection)

    def add_connection(self, connection: Connection) -> None:
        """Append a connection locally, without calling the backend."""
        connections = self._state.connections
        if any(c.id == connection.id for c in connections):
            log.warning("Connection %d already present, replacing it", connection.id)
            connections = tuple(connection if c.id == connection.id else c for c in connections)
        else:
            connections = connections + (connection,)
        self._commit(connections=connections)

    async def create_connection(self, uri: str, name: str, color: str) -> Optional[Connection]:
        """
        Create a connection through the backend and append it.

        Returns:
            The new connection, or None if the backend refused it
        """
        try:
            new_id = await self.backend.create_connection(uri, name, color)
        except Exception as e:
            self._failure(e, "Failed to create connection")
            return None

        connection = Connection(id=new_id, name=name, uri=uri, color=color)
        self.add_connection(connection)
        self._success("Connection created successfully")
        return connection

    async def remove_connection(self, connection_id: int) -> None:
        """
        Delete a connection remotely, then drop everything cached for it.

        The list entry, key cache, loading flag, pattern, expansion and any
        selection pointing at it go away in one commit.
        """
        try:
            await self.backend.delete_connection(connection_id)
        except Exception as e:
            self._failure(e, "Failed to remove connection")
            return

        state = self._state
        changes = dict(
            connections=tuple(c for c in state.connections if c.id != connection_id),
            connection_keys=_without(state.connection_keys, connection_id),
            loading_keys=_without(state.loading_keys, connection_id),
            key_pattern=_without(state.key_pattern, connection_id),
            expanded_connections=state.expanded_connections - {connection_id},
        )
        if state.selected_connection is not None and state.selected_connection.id == connection_id:
            changes["selected_connection"] = None
        if state.selected_key_connection_id == connection_id:
            self._next_key_request()
            changes["selected_key"] = None
            changes["selected_key_connection_id"] = None
        self._commit(**changes)
        log.info("Removed connection %d", connection_id)
        self._success("Connection removed successfully")

    async def update_connection(self, connection: Connection) -> None:
        """Save an edited connection remotely, then replace it locally."""
        try:
            await self.backend.update_connection(connection)
        except Exception as e:
            self._failure(e, "Failed to update connection")
            return

        state = self._state
        changes = dict(
            connections=tuple(connection if c.id == connection.id else c for c in state.connections),
        )
        if state.selected_connection is not None and state.selected_connection.id == connection.id:
            changes["selected_connection"] = connection
        self._commit(**changes)
        self._success("Connection updated successfully")

    # ------------------------------------------------- keys / expansion
    async def toggle_connection(self, connection_id: int) -> None:
        """
        Expand a collapsed connection (connect + full key fetch) or collapse
        an expanded one (local only, cached keys are kept).
        """
        state = self._state
        connection = state.get_connection(connection_id)
        if connection is None:
            log.warning("Ignoring toggle of unknown connection %d", connection_id)
            return

        if state.is_expanded(connection_id):
            self.set_expanded_connection(connection_id, False)
            return

        self._commit(loading_keys=self._loading(connection_id, True))
        try:
            await self.backend.connect(connection_id, connection.uri)
            if self._is_gone(connection_id):
                return
            await self.fetch_keys(connection_id)
        except Exception as e:
            if self._is_gone(connection_id):
                return
            self._commit(loading_keys=self._loading(connection_id, False))
            message = StoreError.from_exception(e).message
            log.warning("Failed to expand connection %d: %s", connection_id, message)
            self.notifier.notify(NotificationKind.ERROR, "Connection Error", message)
            return

        if self._is_gone(connection_id):
            return
        self._commit(
            expanded_connections=self._state.expanded_connections | {connection_id},
            loading_keys=self._loading(connection_id, False),
        )

    async def fetch_keys(self, connection_id: int, pattern: Optional[str] = None) -> None:
        """
        List keys matching pattern and cache them with the pattern used.

        Raises:
            Exception: Whatever the backend raised, after the loading flag
                was cleared
        """
        if pattern is None:
            pattern = self.default_pattern
        self._commit(loading_keys=self._loading(connection_id, True))
        try:
            keys = await self.backend.list_keys(connection_id, pattern)
        except Exception:
            if not self._is_gone(connection_id):
                self._commit(loading_keys=self._loading(connection_id, False))
            raise

        if self._is_gone(connection_id):
            return
        self._commit(
            connection_keys={**self._state.connection_keys, connection_id: list(keys)},
            loading_keys=self._loading(connection_id, False),
            key_pattern={**self._state.key_pattern, connection_id: pattern},
        )

    def set_expanded_connection(self, connection_id: int, expanded: bool) -> None:
        expanded_connections = self._state.expanded_connections
        if not expanded:
            self._commit(expanded_connections=expanded_connections - {connection_id})
            return
        changes = {"expanded_connections": expanded_connections | {connection_id}}
        if connection_id not in self._state.connection_keys:
            changes["connection_keys"] = {**self._state.connection_keys, connection_id: []}
        self._commit(**changes)

    async def refresh_keys(self, connection_id: int) -> None:
        """Re-list keys with the remembered pattern. Errors propagate."""
        await self.fetch_keys(connection_id, self._pattern_for(connection_id))
        self._success("Keys refreshed successfully")

    def set_key_pattern(self, connection_id: int, pattern: str) -> None:
        """Remember a pattern; takes effect on the next fetch/refresh."""
        self._commit(key_pattern={**self._state.key_pattern, connection_id: pattern})

    # ------------------------------------------------------ key detail
    async def get_key_info(self, connection_id: int, key: str) -> None:
        """
        Load a key's detail into the selected key slot.

        Only the most recently issued request may commit; responses of
        superseded requests are dropped.
        """
        token = self._next_key_request()
        try:
            self._require_connection(connection_id)
            detail = await self.backend.get_key_detail(connection_id, key)
        except Exception as e:
            if token != self._key_request_seq:
                log.info("Superseded key info request for %r failed: %s", key, e)
                return
            message = StoreError.from_exception(e).message
            log.warning("Failed to get key info for %r: %s", key, message)
            self.notifier.notify(NotificationKind.ERROR, "Error", f"Failed to get key info: {message}")
            return

        if token != self._key_request_seq:
            log.debug("Dropping superseded key info for %r", key)
            return
        self._commit(
            selected_key=detail,
            selected_key_connection_id=connection_id if detail is not None else None,
        )

    async def set_key_value(self, connection_id: int, key: str, value: str) -> None:
        """Write a string value, then re-read the key from the server."""
        try:
            self._require_connection(connection_id)
            await self.backend.set_key_value(connection_id, key, value)
            await self.get_key_info(connection_id, key)
        except Exception as e:
            self._failure(e, "Failed to set key value")
            return
        self._success("Key value updated successfully")

    async def delete_key(self, connection_id: int, key: str) -> None:
        """Delete a key, clear the selection and re-list the connection's keys."""
        try:
            self._require_connection(connection_id)
            await self.backend.delete_key(connection_id, key)
            self.set_selected_key(None)
            await self.refresh_keys(connection_id)
        except Exception as e:
            self._failure(e, "Failed to delete key")
            return
        self._success("Key deleted successfully")

    async def set_key_ttl(self, connection_id: int, key: str, ttl: int) -> None:
        """Set a key's TTL in seconds (negative removes expiration), then re-read it."""
        try:
            self._require_connection(connection_id)
            await self.backend.set_key_ttl(connection_id, key, ttl)
            await self.get_key_info(connection_id, key)
        except Exception as e:
            self._failure(e, "Failed to set key TTL")
            return
        self._success("Key TTL updated successfully")

    def set_selected_key(self, detail: Optional[KeyDetail], connection_id: Optional[int] = None) -> None:
        """Set the selected key directly; pending get_key_info responses are dropped."""
        self._next_key_request()
        self._commit(
            selected_key=detail,
            selected_key_connection_id=connection_id if detail is not None else None,
        )
