"""
Document store contract used by the workshop engine.

Paths follow a collection/document layout: "workshops" is a top-level collection,
"workshops/<id>/steps" is the steps subcollection of one workshop. A store only
needs five primitives: get one document, list a collection, set, update fields,
and commit an all-or-nothing batch.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class BatchWrite:
    op: str  # set | update
    path: str
    doc_id: str
    data: Dict[str, Any]


@dataclass
class WriteBatch:
    """Writes collected client-side and applied by DocumentStore.commit in one shot."""
    writes: List[BatchWrite] = field(default_factory=list)

    def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self.writes.append(BatchWrite("set", path, doc_id, dict(data)))
        return self

    def update(self, path: str, doc_id: str, fields: Dict[str, Any]) -> "WriteBatch":
        self.writes.append(BatchWrite("update", path, doc_id, dict(fields)))
        return self

    def __len__(self) -> int:
        return len(self.writes)


def split_path(path: str) -> List[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts or len(parts) % 2 == 0:
        raise ValueError(f"Not a collection path: {path!r}")
    return parts


class DocumentStore(ABC):
    @abstractmethod
    async def get(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document with its id under "id", or None."""

    @abstractmethod
    async def list(self, path: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def update(self, path: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing document. Raises NotFound when it is missing."""

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> None:
        """Apply every write of the batch or none of them."""
