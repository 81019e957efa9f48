"""
Entities mirrored by the stores: connections, key details and tabs.
"""
from dataclasses import asdict, dataclass
from typing import Optional

NO_EXPIRATION = -1


@dataclass(frozen=True)
class Connection:
    """Configured endpoint to a remote Redis server."""
    id: int
    name: str
    uri: str
    color: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, connection_id: Optional[int] = None) -> "Connection":
        return cls(
            id=int(data["id"] if connection_id is None else connection_id),
            name=data["name"],
            uri=data["uri"],
            color=data["color"],
        )


@dataclass(frozen=True)
class KeyDetail:
    """Value, type and remaining TTL of one key."""
    key: str
    value: str
    ttl: int
    type: str

    @property
    def expires(self) -> bool:
        return self.ttl != NO_EXPIRATION


@dataclass(frozen=True)
class Tab:
    """Open view of one (connection, key) pair."""
    id: str
    connection_id: str
    key_name: str
    label: str
