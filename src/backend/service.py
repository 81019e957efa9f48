"""
Backend data service boundary consumed by the stores.

Every call is a coroutine. Implementations raise BackendCallError on failure.
"""
from typing import Optional, Protocol

from src.store.models import Connection, KeyDetail


class BackendService(Protocol):
    async def list_connections(self) -> list[Connection]:
        ...

    async def create_connection(self, uri: str, name: str, color: str) -> int:
        ...

    async def connect(self, connection_id: int, uri: str) -> None:
        ...

    async def list_keys(self, connection_id: int, pattern: str) -> list[str]:
        ...

    async def get_key_detail(self, connection_id: int, key: str) -> Optional[KeyDetail]:
        ...

    async def set_key_value(self, connection_id: int, key: str, value: str) -> None:
        ...

    async def delete_key(self, connection_id: int, key: str) -> None:
        ...

    async def set_key_ttl(self, connection_id: int, key: str, ttl: int) -> None:
        ...

    async def update_connection(self, connection: Connection) -> None:
        ...

    async def delete_connection(self, connection_id: int) -> None:
        ...
