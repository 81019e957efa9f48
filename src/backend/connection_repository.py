"""
Connection repository: persists configured connections in app.sqlite.

Each row stores the connection as a JSON document keyed by an
autoincrement id.
"""
import json
import sqlite3
from pathlib import Path
from typing import Optional

from src.shared.errors import AppErrors
from src.store.models import Connection

URI_SCHEMES = ("redis://", "rediss://")


class ConnectionRepository:
    """CRUD over the connections table."""

    def __init__(self, db_path: Path):
        """
        Initialize repository.

        Args:
            db_path: Path to app.sqlite (parent directory is created)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        """Initialize connections table."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS connections (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    data TEXT NOT NULL
                )
            """)
            conn.commit()

    @staticmethod
    def _validate(uri: str, name: str, color: str):
        if not uri.startswith(URI_SCHEMES):
            raise ValueError(AppErrors.INVALID_URI)
        if not name:
            raise ValueError("Connection name cannot be empty")
        if not color:
            raise ValueError("Connection color cannot be empty")

    @staticmethod
    def _serialize(connection: Connection) -> str:
        data = connection.to_dict()
        data.pop("id")
        return json.dumps(data)

    def insert(self, uri: str, name: str, color: str) -> Connection:
        """
        Store a new connection.

        Args:
            uri: redis:// or rediss:// URI
            name: Display name
            color: Color tag

        Returns:
            Connection with its assigned id

        Raises:
            ValueError: If any field is invalid
        """
        uri = uri.strip()
        name = name.strip()
        color = color.strip()
        self._validate(uri, name, color)

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "INSERT INTO connections (data) VALUES (?)",
                (json.dumps({"uri": uri, "name": name, "color": color}),)
            )
            conn.commit()
            new_id = cursor.lastrowid

        return Connection(id=new_id, name=name, uri=uri, color=color)

    def get_by_id(self, connection_id: int) -> Optional[Connection]:
        """Retrieve connection by id, None if absent."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT id, data FROM connections WHERE id = ?",
                (connection_id,)
            ).fetchone()

        if row:
            return Connection.from_dict(json.loads(row[1]), connection_id=row[0])
        return None

    def update(self, connection: Connection) -> None:
        """
        Overwrite a stored connection.

        Raises:
            ValueError: If fields are invalid
            LookupError: If the id is unknown
        """
        self._validate(connection.uri, connection.name, connection.color)

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE connections SET data = ? WHERE id = ?",
                (self._serialize(connection), connection.id)
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise LookupError(f"Connection {connection.id} not found")

    def delete(self, connection_id: int) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM connections WHERE id = ?", (connection_id,))
            conn.commit()

    def list_all(self) -> list[Connection]:
        """List all stored connections in insertion order."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT id, data FROM connections ORDER BY id"
            ).fetchall()

        return [Connection.from_dict(json.loads(r[1]), connection_id=r[0]) for r in rows]
