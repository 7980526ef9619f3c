# database.py
"""
Collection-style access on top of `databases` and SQLAlchemy Core.

Each record type lives in one table and is exposed as a `Collection` with
find / create / update / delete / aggregate operations returning plain dicts.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import databases
import sqlalchemy

from models import admins, customers, medicines, metadata, orders

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Collection:
    def __init__(self, database: databases.Database, table: sqlalchemy.Table):
        self.database = database
        self.table = table
        self.c = table.c

    def _to_document(self, row) -> Dict[str, Any]:
        return {column.name: row[column.name] for column in self.table.columns}

    async def find(self, *criteria, order_by=None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = self.table.select()
        for criterion in criteria:
            query = query.where(criterion)
        if order_by is not None:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        rows = await self.database.fetch_all(query)
        return [self._to_document(row) for row in rows]

    async def find_one(self, *criteria) -> Optional[Dict[str, Any]]:
        found = await self.find(*criteria, limit=1)
        return found[0] if found else None

    async def get(self, doc_id: int) -> Optional[Dict[str, Any]]:
        return await self.find_one(self.c.id == doc_id)

    async def count(self, *criteria) -> int:
        query = sqlalchemy.select(sqlalchemy.func.count()).select_from(self.table)
        for criterion in criteria:
            query = query.where(criterion)
        return await self.database.fetch_val(query)

    async def create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        values = {"created_at": now, "updated_at": now, **values}
        doc_id = await self.database.execute(self.table.insert().values(**values))
        return await self.get(doc_id)

    async def update(self, doc_id: int, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply `values` to one record; None when the id doesn't exist."""
        existing = await self.get(doc_id)
        if existing is None:
            return None
        values = {**values, "updated_at": utcnow()}
        await self.database.execute(
            self.table.update().where(self.c.id == doc_id).values(**values)
        )
        return await self.get(doc_id)

    async def delete(self, doc_id: int) -> bool:
        existing = await self.get(doc_id)
        if existing is None:
            return False
        await self.database.execute(self.table.delete().where(self.c.id == doc_id))
        return True

    async def aggregate(self, query) -> List[Dict[str, Any]]:
        """Run a grouped select against this collection and return its rows as dicts."""
        rows = await self.database.fetch_all(query)
        keys = [column.name for column in query.selected_columns]
        return [{key: row[key] for key in keys} for row in rows]


class DocumentStore:
    def __init__(self, database_url: str, sync_database_url: Optional[str] = None):
        self.database = databases.Database(database_url)
        self.sync_database_url = sync_database_url or database_url
        self.admins = Collection(self.database, admins)
        self.customers = Collection(self.database, customers)
        self.medicines = Collection(self.database, medicines)
        self.orders = Collection(self.database, orders)

    async def connect(self):
        await self.database.connect()
        # Create tables if they don't exist
        sync_engine = sqlalchemy.create_engine(self.sync_database_url)
        metadata.create_all(sync_engine)
        sync_engine.dispose()
        logger.info("Database connected and tables ensured")

    async def disconnect(self):
        await self.database.disconnect()
        logger.info("Database disconnected")
