"""
Default backend data service: SQLite-stored connections plus live Redis clients.
"""
import asyncio
import logging
from typing import Optional

from src.backend.connection_repository import ConnectionRepository
from src.backend.redis_manager import RedisManager
from src.shared.config import AppConfig
from src.shared.errors import BackendCallError, ErrorKind
from src.store.models import Connection, KeyDetail

log = logging.getLogger(__name__)


class LocalBackend:
    """
    Implements BackendService on this machine.

    Repository calls are blocking and run in a worker thread. Repository
    errors are re-raised as BackendCallError so callers only see one type.
    """

    def __init__(self, repository: ConnectionRepository, redis_manager: RedisManager):
        self.repository = repository
        self.redis = redis_manager

    @classmethod
    def from_config(cls, config: AppConfig) -> "LocalBackend":
        return cls(
            ConnectionRepository(config.app_db_path),
            RedisManager(
                socket_timeout=config.redis_socket_timeout,
                scan_count=config.scan_count,
            ),
        )

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except ValueError as e:
            raise BackendCallError(str(e), kind=ErrorKind.INVALID_INPUT) from e
        except LookupError as e:
            raise BackendCallError(str(e), kind=ErrorKind.NOT_FOUND) from e
        except Exception as e:
            log.exception("Connection repository call %s failed", func.__name__)
            raise BackendCallError(f"Storage error: {e}") from e

    async def list_connections(self) -> list[Connection]:
        return await self._run(self.repository.list_all)

    async def create_connection(self, uri: str, name: str, color: str) -> int:
        connection = await self._run(self.repository.insert, uri, name, color)
        log.info("Created connection %d (%s)", connection.id, connection.name)
        return connection.id

    async def update_connection(self, connection: Connection) -> None:
        await self._run(self.repository.update, connection)
        # Next connect() reopens with the new URI
        await self.redis.disconnect(connection.id)

    async def delete_connection(self, connection_id: int) -> None:
        await self._run(self.repository.delete, connection_id)
        await self.redis.disconnect(connection_id)

    async def connect(self, connection_id: int, uri: str) -> None:
        await self.redis.connect(connection_id, uri)

    async def list_keys(self, connection_id: int, pattern: str) -> list[str]:
        return await self.redis.list_keys(connection_id, pattern)

    async def get_key_detail(self, connection_id: int, key: str) -> Optional[KeyDetail]:
        return await self.redis.get_key_detail(connection_id, key)

    async def set_key_value(self, connection_id: int, key: str, value: str) -> None:
        await self.redis.set_key_value(connection_id, key, value)

    async def delete_key(self, connection_id: int, key: str) -> None:
        await self.redis.delete_key(connection_id, key)

    async def set_key_ttl(self, connection_id: int, key: str, ttl: int) -> None:
        await self.redis.set_key_ttl(connection_id, key, ttl)

    async def close(self) -> None:
        await self.redis.close()
