"""
Redis manager: one asyncio Redis client per configured connection.
"""
import json
import logging
from typing import Any, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.shared.errors import AppErrors, BackendCallError, ErrorKind, format_redis_error
from src.store.models import KeyDetail

log = logging.getLogger(__name__)

UNSUPPORTED_TYPE = "Unsupported type"


def _b2s(val: Any) -> Any:
    """Convert Redis bytes to str recursively."""
    if isinstance(val, bytes):
        return val.decode("utf-8", errors="replace")
    if isinstance(val, (list, tuple)):
        return [_b2s(v) for v in val]
    if isinstance(val, set):
        return {_b2s(v) for v in val}
    if isinstance(val, dict):
        return {_b2s(k): _b2s(v) for k, v in val.items()}
    return val


def _redis_error(error: RedisError) -> BackendCallError:
    return BackendCallError(format_redis_error(error))


class RedisManager:
    """
    Keeps the open Redis clients, keyed by connection id.

    A client is registered by connect() only after it answered PING; every
    other call requires a registered client.
    """

    def __init__(
        self,
        socket_timeout: float = 5.0,
        scan_count: int = 500,
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.socket_timeout = socket_timeout
        self.scan_count = scan_count
        self._client_factory = client_factory or self._open_client
        self._clients: dict[int, Any] = {}

    def _open_client(self, uri: str):
        return aioredis.from_url(uri, socket_timeout=self.socket_timeout)

    def _client(self, connection_id: int):
        client = self._clients.get(connection_id)
        if client is None:
            raise BackendCallError(AppErrors.NOT_CONNECTED, kind=ErrorKind.NOT_CONNECTED)
        return client

    def is_connected(self, connection_id: int) -> bool:
        return connection_id in self._clients

    async def connect(self, connection_id: int, uri: str) -> None:
        """Open a client for the URI, ping it and register it under the id."""
        try:
            client = self._client_factory(uri)
        except ValueError as e:
            raise BackendCallError(f"Invalid Redis URI: {e}", kind=ErrorKind.INVALID_INPUT) from e

        try:
            await client.ping()
        except RedisError as e:
            await client.aclose()
            raise _redis_error(e) from e

        previous = self._clients.pop(connection_id, None)
        if previous is not None:
            await previous.aclose()
        self._clients[connection_id] = client
        log.info("Connected to Redis for connection %d", connection_id)

    async def disconnect(self, connection_id: int) -> None:
        client = self._clients.pop(connection_id, None)
        if client is not None:
            await client.aclose()
            log.info("Disconnected Redis for connection %d", connection_id)

    async def close(self) -> None:
        for connection_id in list(self._clients):
            await self.disconnect(connection_id)

    async def list_keys(self, connection_id: int, pattern: str) -> list[str]:
        client = self._client(connection_id)
        try:
            # SCAN may return a key more than once
            keys = [_b2s(k) async for k in client.scan_iter(match=pattern, count=self.scan_count)]
        except RedisError as e:
            raise _redis_error(e) from e
        return list(dict.fromkeys(keys))

    async def get_key_detail(self, connection_id: int, key: str) -> Optional[KeyDetail]:
        """
        Read type, TTL and value of a key.

        Collections are rendered as JSON text. Returns None if the key does
        not exist.
        """
        client = self._client(connection_id)
        try:
            if not await client.exists(key):
                return None
            key_type = _b2s(await client.type(key))
            ttl = int(await client.ttl(key))

            if key_type == "string":
                value = _b2s(await client.get(key)) or ""
            elif key_type == "list":
                value = json.dumps(_b2s(await client.lrange(key, 0, -1)))
            elif key_type == "set":
                value = json.dumps(sorted(_b2s(await client.smembers(key))))
            elif key_type == "hash":
                value = json.dumps(_b2s(await client.hgetall(key)))
            elif key_type == "zset":
                data = await client.zrange(key, 0, -1, withscores=True)
                value = json.dumps([[_b2s(m), float(s)] for m, s in data])
            else:
                value = UNSUPPORTED_TYPE
        except RedisError as e:
            raise _redis_error(e) from e

        return KeyDetail(key=key, value=value, ttl=ttl, type=key_type)

    async def set_key_value(self, connection_id: int, key: str, value: str) -> None:
        client = self._client(connection_id)
        try:
            await client.set(key, value)
        except RedisError as e:
            raise _redis_error(e) from e

    async def delete_key(self, connection_id: int, key: str) -> None:
        client = self._client(connection_id)
        try:
            await client.delete(key)
        except RedisError as e:
            raise _redis_error(e) from e

    async def set_key_ttl(self, connection_id: int, key: str, ttl: int) -> None:
        """Set expiration in seconds; a negative ttl removes the expiration."""
        client = self._client(connection_id)
        try:
            if ttl < 0:
                await client.persist(key)
            else:
                await client.expire(key, ttl)
        except RedisError as e:
            raise _redis_error(e) from e
