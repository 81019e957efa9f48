"""
Application session: wires config, backend, notifier and both stores.
"""
import logging
from typing import Optional

from src.backend.local_backend import LocalBackend
from src.backend.service import BackendService
from src.shared.config import AppConfig
from src.shared.logging_config import configure_logging
from src.shared.notifications import LoggingNotifier, Notifier, ToastNotifier
from src.store.connection_store import ConnectionStore
from src.store.models import Tab
from src.store.tab_store import TabStore

log = logging.getLogger(__name__)


class AppSession:
    """One running client: a connection store and a tab session."""

    def __init__(
        self,
        config: AppConfig,
        backend: BackendService,
        notifier: Optional[Notifier] = None,
    ):
        self.config = config
        self.backend = backend
        self.notifier = notifier or LoggingNotifier()
        self.connections = ConnectionStore(
            backend,
            self.notifier,
            default_pattern=config.default_key_pattern,
        )
        self.tabs = TabStore()

    async def start(self) -> None:
        await self.connections.fetch_connections()

    async def open_key(self, connection_id: int, key_name: str) -> Tab:
        """Open (or focus) the tab for a key and load its detail."""
        tab = self.tabs.add_tab(connection_id, key_name)
        await self.connections.get_key_info(connection_id, key_name)
        return tab

    async def select_tab(self, tab_id: str) -> None:
        tab = self.tabs.get_tab_by_id(tab_id)
        if tab is None:
            log.warning("Ignoring selection of unknown tab %r", tab_id)
            return
        self.tabs.set_active_tab(tab_id)
        await self.connections.get_key_info(int(tab.connection_id), tab.key_name)

    async def close_tab(self, tab_id: str) -> Optional[Tab]:
        """
        Close a tab and load the key of the tab that became active.

        Returns:
            The new active tab, or None when no tab is left active
        """
        new_active_id = self.tabs.remove_tab(tab_id)
        if new_active_id is None:
            self.connections.set_selected_key(None)
            return None
        tab = self.tabs.get_tab_by_id(new_active_id)
        if tab is not None:
            await self.connections.get_key_info(int(tab.connection_id), tab.key_name)
        return tab

    async def aclose(self) -> None:
        close = getattr(self.backend, "close", None)
        if close is not None:
            await close()


def make_notifier(config: AppConfig) -> Notifier:
    """Pick the notification sink named by config.notifier ("log" or "toast")."""
    if config.notifier == "toast":
        return ToastNotifier()
    if config.notifier != "log":
        log.warning("Unknown notifier %r, using log", config.notifier)
    return LoggingNotifier()


def create_session(config: Optional[AppConfig] = None, notifier: Optional[Notifier] = None) -> AppSession:
    """Build the default session backed by SQLite and Redis."""
    config = config or AppConfig.from_env()
    configure_logging(config.log_level)
    backend = LocalBackend.from_config(config)
    log.info("Session data root: %s", config.data_root)
    return AppSession(config, backend, notifier or make_notifier(config))
