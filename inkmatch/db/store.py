# inkmatch/db/store.py
from __future__ import annotations
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence, Tuple
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from inkmatch.core.errors import ConflictError, UpstreamUnavailableError

"""
Note:
    - Documents are plain dicts keyed by `_id`; repositories own the model mapping.
    - No joins: callers filter across entities in-process.
    - `replace_if_version` is the only write primitive used for contended records
      (bookings, artist-day schedules). It must be atomic per document.
"""

Sort = Sequence[Tuple[str, int]]


class DocumentStore(ABC):

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Dict[str, Any],
        *,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Filter supports equality, dotted paths and $in/$ne/$gt/$gte/$lt/$lte."""

    @abstractmethod
    async def insert(self, collection: str, doc_id: str, doc: dict) -> None:
        """Raise ConflictError if the id already exists."""

    @abstractmethod
    async def replace_if_version(self, collection: str, doc_id: str, expected_version: int, doc: dict) -> bool:
        """
        Replace the document only if its stored `version` equals expected_version.
        Returns False when the document is missing or the version moved on.
        """

    @abstractmethod
    async def upsert(self, collection: str, doc_id: str, doc: dict) -> None:
        ...


# ----- MongoDB (motor) -------------------------------------------------------

class MongoDocumentStore(DocumentStore):
    """
    Motor-backed store. Any driver failure is surfaced as UpstreamUnavailableError
    so services abort the operation as a single failure.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def get(self, collection, doc_id):
        try:
            return await self.db[collection].find_one({"_id": doc_id})
        except PyMongoError as e:
            raise UpstreamUnavailableError(f"store get failed: {e}", {"collection": collection}) from e

    async def find(self, collection, filter, *, sort=None, limit=None):
        try:
            cursor = self.db[collection].find(filter)
            if sort:
                cursor = cursor.sort([(k, ASCENDING if d >= 0 else DESCENDING) for k, d in sort])
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise UpstreamUnavailableError(f"store find failed: {e}", {"collection": collection}) from e

    async def insert(self, collection, doc_id, doc):
        try:
            await self.db[collection].insert_one({**doc, "_id": doc_id})
        except DuplicateKeyError as e:
            raise ConflictError(f"{collection} '{doc_id}' already exists") from e
        except PyMongoError as e:
            raise UpstreamUnavailableError(f"store insert failed: {e}", {"collection": collection}) from e

    async def replace_if_version(self, collection, doc_id, expected_version, doc):
        try:
            res = await self.db[collection].replace_one(
                {"_id": doc_id, "version": expected_version},
                {**doc, "_id": doc_id},
                upsert=False,
            )
            return res.matched_count == 1
        except PyMongoError as e:
            raise UpstreamUnavailableError(f"store replace failed: {e}", {"collection": collection}) from e

    async def upsert(self, collection, doc_id, doc):
        try:
            await self.db[collection].replace_one({"_id": doc_id}, {**doc, "_id": doc_id}, upsert=True)
        except PyMongoError as e:
            raise UpstreamUnavailableError(f"store upsert failed: {e}", {"collection": collection}) from e


# ----- In-process store (tests, local runs without MONGO_URI) ----------------

_MISSING = object()

def _resolve(doc: dict, path: str):
    node: Any = doc
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node

def _candidates(node: Any, parts: List[str]) -> List[Any]:
    """Values reachable by a dotted path; arrays fan out like Mongo's implicit $elemMatch."""
    if not parts:
        return [node, *node] if isinstance(node, list) else [node]
    if isinstance(node, dict):
        return _candidates(node[parts[0]], parts[1:]) if parts[0] in node else []
    if isinstance(node, list):
        return [v for el in node for v in _candidates(el, parts)]
    return []

def _compare(op: str, value, arg) -> bool:
    if value is None or isinstance(value, (list, dict)):
        return False
    try:
        if op == "$gt":
            return value > arg
        if op == "$gte":
            return value >= arg
        if op == "$lt":
            return value < arg
        return value <= arg
    except TypeError:
        return False

def _match_field(values: List[Any], cond) -> bool:
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        for op, arg in cond.items():
            if op == "$in":
                ok = any(v in arg for v in values if not isinstance(v, (list, dict)))
            elif op == "$ne":
                ok = all(v != arg for v in values)
            elif op in ("$gt", "$gte", "$lt", "$lte"):
                ok = any(_compare(op, v, arg) for v in values)
            else:
                raise ValueError(f"unsupported operator {op}")
            if not ok:
                return False
        return True
    return any(v == cond for v in values)

def matches(doc: dict, filter: Dict[str, Any]) -> bool:
    return all(_match_field(_candidates(doc, path.split(".")), cond) for path, cond in filter.items())


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-of-dicts store with copy-on-read/write. Each operation completes without
    awaiting, so every call is atomic with respect to other coroutines.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, dict]] = {}

    def _col(self, collection: str) -> Dict[str, dict]:
        return self._data.setdefault(collection, {})

    async def get(self, collection, doc_id):
        doc = self._col(collection).get(doc_id)
        return deepcopy(doc) if doc is not None else None

    async def find(self, collection, filter, *, sort=None, limit=None):
        docs = [d for d in self._col(collection).values() if matches(d, filter)]
        # stable multi-key sort: apply keys from last to first
        for key, direction in reversed(list(sort or [])):
            present = [d for d in docs if _resolve(d, key) is not _MISSING]
            absent = [d for d in docs if _resolve(d, key) is _MISSING]
            present.sort(key=lambda d: _resolve(d, key), reverse=direction < 0)
            docs = present + absent
        if limit:
            docs = docs[:limit]
        return [deepcopy(d) for d in docs]

    async def insert(self, collection, doc_id, doc):
        col = self._col(collection)
        if doc_id in col:
            raise ConflictError(f"{collection} '{doc_id}' already exists")
        col[doc_id] = {**deepcopy(doc), "_id": doc_id}

    async def replace_if_version(self, collection, doc_id, expected_version, doc):
        col = self._col(collection)
        current = col.get(doc_id)
        if current is None or current.get("version") != expected_version:
            return False
        col[doc_id] = {**deepcopy(doc), "_id": doc_id}
        return True

    async def upsert(self, collection, doc_id, doc):
        self._col(collection)[doc_id] = {**deepcopy(doc), "_id": doc_id}
