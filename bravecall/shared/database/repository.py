"""Row-mapping repository base for the companion's PostgreSQL tables.

A subclass names its table and maps rows both ways. Queries beyond
lookup-by-id and upsert live in the subclass and run through
`_fetch_one`, `_fetch_many` and `_write_returning`.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RepositoryError(Exception):
    """Persistence failure the caller is expected to handle."""


class NotFoundError(RepositoryError):
    """No row matched the requested id."""


class BaseRepository(ABC, Generic[T]):
    """Maps one table to one entity type.

    The shared queries select `*`, so `_row_to_entity` reads columns in
    table-definition order.
    """

    def __init__(self, connection_manager: ConnectionManager, table_name: str):
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info("REPOSITORY_INITIALIZED", extra={"table_name": table_name})

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        ...

    @abstractmethod
    def _entity_to_params(self, entity: T) -> Dict[str, Any]:
        """Column -> value mapping for an upsert; must include `id`."""

    def _fetch_one(self, query: str, params: Sequence[Any]) -> Optional[T]:
        with self.connection_manager.get_connection() as conn, conn.cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return None if row is None else self._row_to_entity(row)

    def _fetch_many(self, query: str, params: Sequence[Any]) -> List[T]:
        with self.connection_manager.get_connection() as conn, conn.cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [self._row_to_entity(row) for row in rows]

    def _write_returning(self, query: str, params: Sequence[Any]) -> Optional[T]:
        """Run a committed write ending in `RETURNING *`; map the row it returns."""
        with self.connection_manager.transaction() as conn, conn.cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return None if row is None else self._row_to_entity(row)

    def find_by_id(self, entity_id: str) -> Optional[T]:
        return self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE id = %s", (entity_id,)
        )

    def save(self, entity: T) -> T:
        """Insert, or overwrite every column on an id conflict.

        Returns:
            The row as stored, or `entity` if the database returned nothing
        """
        params = self._entity_to_params(entity)
        columns = ", ".join(params)
        placeholders = ", ".join(["%s"] * len(params))
        updates = ", ".join(f"{col} = EXCLUDED.{col}" for col in params if col != "id")

        query = (
            f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT (id) DO UPDATE SET {updates} RETURNING *"
        )
        stored = self._write_returning(query, list(params.values()))
        return entity if stored is None else stored
