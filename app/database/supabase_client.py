import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from app.config import settings
from app.core.errors import NotFound, PermissionDenied, TransportFailure
from app.database.document_store import DocumentStore, WriteBatch, split_path
from app.database.memory_store import InMemoryDocumentStore

logger = logging.getLogger(__name__)

# Postgres insufficient_privilege and PostgREST JWT errors
_PERMISSION_CODES = {"42501", "PGRST301", "PGRST302"}


class SupabaseClient:
    _client: AsyncClient = None

    @classmethod
    async def get_client(cls) -> AsyncClient:
        if cls._client is None:
            cls._client = await acreate_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def reset_client(cls):
        cls._client = None


def _translate(exc: Exception, what: str) -> Exception:
    if isinstance(exc, APIError):
        code = str(exc.code or "")
        if code in _PERMISSION_CODES or code in ("401", "403"):
            return PermissionDenied(f"Permission denied while trying to {what}")
        return TransportFailure(f"Failed to {what}: {exc.message}")
    return TransportFailure(f"Failed to {what}: {exc}")


class SupabaseDocumentStore(DocumentStore):
    """Maps collection paths onto Supabase tables.

    "workshops" is the workshops table; "workshops/<id>/steps" is the steps table
    filtered by workshop_id. Batches go through one Postgres function so they
    commit in a single transaction (see app/modules/workshops/models.py).
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self._tables = {
            "workshops": (settings.workshops_table, None),
            "steps": (settings.steps_table, "workshop_id"),
        }

    def _resolve(self, path: str) -> Tuple[str, Dict[str, str]]:
        parts = split_path(path)
        collection = parts[-1]
        if collection not in self._tables:
            raise ValueError(f"Unknown collection: {collection}")
        table, parent_key = self._tables[collection]
        filters = {}
        if len(parts) > 1:
            if parent_key is None:
                raise ValueError(f"Collection {collection} is not a subcollection")
            filters[parent_key] = parts[-2]
        return table, filters

    async def _execute(self, query, what: str):
        try:
            return await query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Supabase error while trying to {what}: {e}")
            raise _translate(e, what)

    async def get(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        table, filters = self._resolve(path)
        query = self.client.table(table).select("*").eq("id", doc_id)
        for key, value in filters.items():
            query = query.eq(key, value)
        result = await self._execute(query.maybe_single(), f"load {table} {doc_id}")
        if result is None or not result.data:
            return None
        return result.data

    async def list(self, path: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        table, filters = self._resolve(path)
        query = self.client.table(table).select("*")
        for key, value in filters.items():
            query = query.eq(key, value)
        if order_by:
            query = query.order(order_by)
        result = await self._execute(query, f"list {table}")
        return result.data or []

    async def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        table, filters = self._resolve(path)
        row = {**data, **filters, "id": doc_id}
        await self._execute(self.client.table(table).upsert(row), f"write {table} {doc_id}")

    async def update(self, path: str, doc_id: str, fields: Dict[str, Any]) -> None:
        table, filters = self._resolve(path)
        query = self.client.table(table).update(fields).eq("id", doc_id)
        for key, value in filters.items():
            query = query.eq(key, value)
        result = await self._execute(query, f"update {table} {doc_id}")
        if not result.data:
            raise NotFound(f"{table} {doc_id} not found")

    async def commit(self, batch: WriteBatch) -> None:
        writes = []
        for write in batch.writes:
            table, filters = self._resolve(write.path)
            writes.append({
                "op": write.op,
                "table": table,
                "id": write.doc_id,
                "data": {**write.data, **filters},
            })
        await self._execute(
            self.client.rpc(settings.batch_rpc, {"writes": writes}),
            f"commit batch of {len(writes)} write(s)",
        )


_memory_store: Optional[InMemoryDocumentStore] = None


async def get_document_store() -> DocumentStore:
    global _memory_store
    if settings.uses_memory_store:
        if _memory_store is None:
            _memory_store = InMemoryDocumentStore()
        return _memory_store
    return SupabaseDocumentStore(await SupabaseClient.get_client())
