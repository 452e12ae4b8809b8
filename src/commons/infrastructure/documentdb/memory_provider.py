"""In-process document database for local runs and tests."""

import copy
import operator
from collections import defaultdict
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DuplicateDocumentError,
    HealthStatus,
    to_storable,
)

_COMPARATORS = {
    "$lt": operator.lt,
    "$lte": operator.le,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$ne": operator.ne,
}


def _step(node: Any, part: str) -> Any:
    """Descend one path segment; numeric segments index into lists."""
    if isinstance(node, dict):
        return node.get(part)
    if isinstance(node, list) and part.isdigit() and int(part) < len(node):
        return node[int(part)]
    return None


def _get_path(document: dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        value = _step(value, part)
        if value is None:
            return None
    return value


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    node: Any = document
    for part in parents:
        child = _step(node, part)
        if child is None:
            if not isinstance(node, dict):
                raise ValueError(f"Cannot create '{part}' inside a list at {path}")
            child = node.setdefault(part, {})
        node = child
    if isinstance(node, list):
        node[int(leaf)] = value
    else:
        node[leaf] = value


def _sort_key(document: dict[str, Any], path: str) -> tuple[bool, Any]:
    value = _get_path(document, path)
    # Missing values are never compared with real ones
    return (value is None, 0 if value is None else value)


def _matches_condition(value: Any, condition: Any) -> bool:
    is_operator = (
        isinstance(condition, dict)
        and bool(condition)
        and all(key.startswith("$") for key in condition)
    )
    if not is_operator:
        return bool(value == condition)

    for op, expected in condition.items():
        if op == "$in":
            if value not in expected:
                return False
        elif op == "$nin":
            if value in expected:
                return False
        elif op == "$exists":
            if (value is not None) != bool(expected):
                return False
        elif op in _COMPARATORS:
            if op != "$ne" and value is None:
                return False
            if not _COMPARATORS[op](value, expected):
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return True


def matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    """Evaluate a MongoDB-style filter against a plain document."""
    for key, condition in filters.items():
        if key == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
        elif key == "$and":
            if not all(matches(document, clause) for clause in condition):
                return False
        elif not _matches_condition(_get_path(document, key), condition):
            return False
    return True


@dataclass
class _UniqueIndex:
    name: str
    fields: list[str]
    partial_filter: dict[str, Any] | None

    def key_for(self, document: dict[str, Any]) -> tuple[Any, ...] | None:
        if self.partial_filter and not matches(document, self.partial_filter):
            return None
        return tuple(_get_path(document, field) for field in self.fields)


class InMemoryDocumentDB(DocumentDBBase):
    """Dictionary-backed document database.

    Every method runs without awaiting, so each call is atomic with respect
    to other coroutines on the same event loop.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._indexes: dict[str, list[_UniqueIndex]] = defaultdict(list)

    def _check_unique(
        self,
        collection: str,
        candidate: dict[str, Any],
        ignore_id: str | None = None,
    ) -> None:
        for index in self._indexes[collection]:
            key = index.key_for(candidate)
            if key is None:
                continue
            for doc_id, existing in self._collections[collection].items():
                if doc_id != ignore_id and index.key_for(existing) == key:
                    raise DuplicateDocumentError(collection, f"{index.name} {key}")

    def _sorted(
        self,
        documents: list[dict[str, Any]],
        sort: list[tuple[str, int]] | None,
    ) -> list[dict[str, Any]]:
        for field, direction in reversed(sort or []):
            documents.sort(
                key=lambda doc, f=field: _sort_key(doc, f),
                reverse=direction < 0,
            )
        return documents

    async def insert(self, collection: str, document: dict[str, Any]) -> str:
        doc = copy.deepcopy(to_storable(document))
        doc_id = str(doc.setdefault("id", uuid4().hex))
        if doc_id in self._collections[collection]:
            raise DuplicateDocumentError(collection, f"id {doc_id}")
        self._check_unique(collection, doc)
        self._collections[collection][doc_id] = doc
        return doc_id

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        doc = self._collections[collection].get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        filters = to_storable(filters)
        found = [
            doc for doc in self._collections[collection].values() if matches(doc, filters)
        ]
        return copy.deepcopy(self._sorted(found, sort)[skip : skip + limit])

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        found = await self.find(collection, filters, limit=1)
        return found[0] if found else None

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        doc = self._collections[collection].get(document_id)
        if doc is None:
            return False
        updated = copy.deepcopy(doc)
        for path, value in to_storable(updates).items():
            _set_path(updated, path, copy.deepcopy(value))
        self._check_unique(collection, updated, ignore_id=document_id)
        self._collections[collection][document_id] = updated
        return True

    async def find_one_and_update(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any] | None = None,
        increments: dict[str, int] | None = None,
        sort: list[tuple[str, int]] | None = None,
        upsert: bool = False,
    ) -> dict[str, Any] | None:
        if not updates and not increments:
            raise ValueError("find_one_and_update needs updates or increments")

        filters = to_storable(filters)
        candidates = self._sorted(
            [doc for doc in self._collections[collection].values() if matches(doc, filters)],
            sort,
        )
        if candidates:
            target = copy.deepcopy(candidates[0])
        elif upsert:
            target = {
                key: value
                for key, value in filters.items()
                if not key.startswith("$") and not isinstance(value, dict)
            }
            target.setdefault("id", uuid4().hex)
        else:
            return None

        for path, value in to_storable(updates or {}).items():
            _set_path(target, path, copy.deepcopy(value))
        for path, amount in (increments or {}).items():
            _set_path(target, path, (_get_path(target, path) or 0) + amount)

        doc_id = str(target["id"])
        self._check_unique(collection, target, ignore_id=doc_id)
        self._collections[collection][doc_id] = target
        return copy.deepcopy(target)

    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        filters = to_storable(filters)
        targets = [
            doc_id
            for doc_id, doc in self._collections[collection].items()
            if matches(doc, filters)
        ]
        for doc_id in targets:
            await self.update(collection, doc_id, updates)
        return len(targets)

    async def delete(self, collection: str, document_id: str) -> bool:
        return self._collections[collection].pop(document_id, None) is not None

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        filters = to_storable(filters or {})
        return sum(
            1 for doc in self._collections[collection].values() if matches(doc, filters)
        )

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
        partial_filter: dict[str, Any] | None = None,
    ) -> str:
        index_name = name or "_".join(f"{field}_{direction}" for field, direction in fields)
        if unique and all(index.name != index_name for index in self._indexes[collection]):
            self._indexes[collection].append(
                _UniqueIndex(
                    name=index_name,
                    fields=[field for field, _ in fields],
                    partial_filter=to_storable(partial_filter) if partial_filter else None,
                )
            )
        return index_name

    async def health_check(self) -> HealthStatus:
        return HealthStatus(
            healthy=True,
            latency_ms=0.0,
            message="In-memory document store",
            details={"collections": str(len(self._collections))},
        )
