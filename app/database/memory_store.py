import copy
import logging
from typing import Any, Dict, List, Optional

from app.core.errors import NotFound
from app.database.document_store import DocumentStore, WriteBatch, split_path

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store for local runs (STORE_BACKEND=memory) and tests.

    Documents are deep-copied on the way in and out so callers never share state
    with the store, the same as with a remote database.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _collection(self, path: str) -> Dict[str, Dict[str, Any]]:
        key = "/".join(split_path(path))
        return self._collections.setdefault(key, {})

    async def get(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._collection(path).get(doc_id)
        if doc is None:
            return None
        return {**copy.deepcopy(doc), "id": doc_id}

    async def list(self, path: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        docs = [{**copy.deepcopy(d), "id": doc_id} for doc_id, d in self._collection(path).items()]
        if order_by:
            docs.sort(key=lambda d: d.get(order_by))
        return docs

    async def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._collection(path)[doc_id] = copy.deepcopy({k: v for k, v in data.items() if k != "id"})

    async def update(self, path: str, doc_id: str, fields: Dict[str, Any]) -> None:
        collection = self._collection(path)
        if doc_id not in collection:
            raise NotFound(f"Document {path}/{doc_id} not found")
        collection[doc_id].update(copy.deepcopy(fields))

    async def commit(self, batch: WriteBatch) -> None:
        # Validate every update target first so a bad write leaves nothing applied
        for write in batch.writes:
            if write.op == "update" and write.doc_id not in self._collection(write.path):
                raise NotFound(f"Document {write.path}/{write.doc_id} not found")
            if write.op not in ("set", "update"):
                raise ValueError(f"Unsupported batch operation: {write.op}")
        for write in batch.writes:
            if write.op == "set":
                await self.set(write.path, write.doc_id, write.data)
            else:
                await self.update(write.path, write.doc_id, write.data)
        logger.debug(f"Committed batch of {len(batch)} write(s)")

    def clear(self) -> None:
        self._collections.clear()
