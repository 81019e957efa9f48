"""
Tab session: which keys are open and which one is active.

Independent of the backend and of the connection store; tabs refer to
connections only through the id embedded in the tab id.
"""
from dataclasses import dataclass
from typing import Optional, Union

from src.store.base import SnapshotStore
from src.store.models import Tab


def make_tab_id(connection_id: Union[int, str], key_name: str) -> str:
    """Deterministic tab id for a (connection, key) pair."""
    return f"{connection_id}-{key_name}"


@dataclass(frozen=True)
class TabState:
    tabs: tuple[Tab, ...] = ()
    active_tab_id: Optional[str] = None


class TabStore(SnapshotStore[TabState]):
    """Ordered set of open tabs with at most one active."""

    def __init__(self):
        super().__init__(TabState())

    @property
    def tabs(self) -> tuple[Tab, ...]:
        return self._state.tabs

    @property
    def active_tab_id(self) -> Optional[str]:
        return self._state.active_tab_id

    @property
    def active_tab(self) -> Optional[Tab]:
        if self._state.active_tab_id is None:
            return None
        return self.get_tab_by_id(self._state.active_tab_id)

    def add_tab(self, connection_id: Union[int, str], key_name: str, label: Optional[str] = None) -> Tab:
        """
        Open a tab for the pair, or activate it if it is already open.

        Existing tabs keep their position. New tabs are appended.
        """
        tab_id = make_tab_id(connection_id, key_name)
        existing = self.get_tab_by_id(tab_id)
        if existing is not None:
            self._commit(active_tab_id=tab_id)
            return existing

        tab = Tab(
            id=tab_id,
            connection_id=str(connection_id),
            key_name=key_name,
            label=key_name if label is None else label,
        )
        self._commit(tabs=self._state.tabs + (tab,), active_tab_id=tab_id)
        return tab

    def remove_tab(self, tab_id: str) -> Optional[str]:
        """
        Close a tab.

        When the closed tab was active, the tab that slides into its position
        becomes active, or the previous one if it was last.

        Returns:
            The active tab id after the close, None if no tab is left
            active. Unknown ids change nothing.
        """
        state = self._state
        index = next((i for i, tab in enumerate(state.tabs) if tab.id == tab_id), -1)
        if index == -1:
            return state.active_tab_id

        remaining = state.tabs[:index] + state.tabs[index + 1:]

        if state.active_tab_id == tab_id:
            if index < len(remaining):
                new_active = remaining[index].id
            elif remaining:
                new_active = remaining[index - 1].id
            else:
                new_active = None
        else:
            new_active = state.active_tab_id

        self._commit(tabs=remaining, active_tab_id=new_active)
        return new_active

    def set_active_tab(self, tab_id: Optional[str]) -> None:
        self._commit(active_tab_id=tab_id)

    def get_tab_by_id(self, tab_id: str) -> Optional[Tab]:
        return next((tab for tab in self._state.tabs if tab.id == tab_id), None)
