"""
In-process stand-in for the Firestore client, selected with USE_MOCK_DB=true.

Supports the subset of the client API this service uses: collection/document
references, set/get/update, where/order_by/limit/stream queries and
last-update-time write preconditions. Documents live in memory and are
optionally mirrored to a JSON file so a local dev server survives restarts.
"""

import copy
import itertools
import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from google.api_core.exceptions import FailedPrecondition, NotFound

logger = logging.getLogger(__name__)

_DATETIME_TAG = "__datetime__"


def _encode(value: Any):
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    raise TypeError(f"Unsupported type in mock DB: {type(value)!r}")


def _decode(obj: Dict):
    if set(obj.keys()) == {_DATETIME_TAG}:
        return datetime.fromisoformat(obj[_DATETIME_TAG])
    return obj


_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
}


class MockWriteOption:
    def __init__(self, last_update_time=None):
        self.last_update_time = last_update_time


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict], update_time):
        self.reference = reference
        self.id = reference.id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None


class MockDocumentReference:
    def __init__(self, db: "MockFirestore", collection: str, doc_id: str):
        self._db = db
        self._collection = collection
        self.id = doc_id

    def get(self) -> MockDocumentSnapshot:
        with self._db._lock:
            entry = self._db._docs(self._collection).get(self.id)
            if entry is None:
                return MockDocumentSnapshot(self, None, None)
            return MockDocumentSnapshot(self, entry["data"], entry["update_time"])

    def set(self, data: Dict, merge: bool = False):
        with self._db._lock:
            docs = self._db._docs(self._collection)
            if merge and self.id in docs:
                merged = docs[self.id]["data"]
                merged.update(copy.deepcopy(data))
                new_data = merged
            else:
                new_data = copy.deepcopy(data)
            docs[self.id] = {"data": new_data, "update_time": self._db._tick()}
            self._db._flush()

    def update(self, data: Dict, option: Optional[MockWriteOption] = None):
        with self._db._lock:
            docs = self._db._docs(self._collection)
            entry = docs.get(self.id)
            if entry is None:
                raise NotFound(f"No document to update: {self._collection}/{self.id}")
            if option is not None and option.last_update_time != entry["update_time"]:
                raise FailedPrecondition(f"Document {self._collection}/{self.id} changed since read")
            entry["data"].update(copy.deepcopy(data))
            entry["update_time"] = self._db._tick()
            self._db._flush()

    def delete(self):
        with self._db._lock:
            self._db._docs(self._collection).pop(self.id, None)
            self._db._flush()


class MockQuery:
    def __init__(self, db: "MockFirestore", collection: str,
                 filters: Tuple = (), orders: Tuple = (), limit: Optional[int] = None):
        self._db = db
        self._collection = collection
        self._filters = filters
        self._orders = orders
        self._limit = limit

    def _copy(self, **changes) -> "MockQuery":
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
        }
        state.update(changes)
        return MockQuery(self._db, self._collection, **state)

    def where(self, field_path: Optional[str] = None, op_string: Optional[str] = None,
              value: Any = None, *, filter=None) -> "MockQuery":
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        if op_string not in _OPERATORS:
            raise ValueError(f"Unsupported operator in mock DB: {op_string}")
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "MockQuery":
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count: int) -> "MockQuery":
        return self._copy(limit=count)

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        with self._db._lock:
            entries = list(self._db._docs(self._collection).items())

        matched = []
        for doc_id, entry in entries:
            data = entry["data"]
            if all(_OPERATORS[op](data.get(field), value) for field, op, value in self._filters):
                matched.append((doc_id, entry))

        # Stable sorts applied last-key-first give multi-key ordering.
        # Firestore drops documents lacking an order_by field.
        for field, direction in reversed(self._orders):
            matched = [m for m in matched if m[1]["data"].get(field) is not None]
            matched.sort(key=lambda m: m[1]["data"][field], reverse=(direction == "DESCENDING"))

        if self._limit is not None:
            matched = matched[: self._limit]

        for doc_id, entry in matched:
            ref = MockDocumentReference(self._db, self._collection, doc_id)
            yield MockDocumentSnapshot(ref, entry["data"], entry["update_time"])


class MockCollection(MockQuery):
    def __init__(self, db: "MockFirestore", name: str):
        super().__init__(db, name)
        self.id = name

    def document(self, doc_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._db, self._collection, doc_id or uuid.uuid4().hex[:20])


class MockFirestore:
    """Thread-safe in-memory document store mimicking firestore.Client."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._lock = threading.RLock()
        self._counter = itertools.count(1)
        self._collections: Dict[str, Dict[str, Dict]] = {}
        if path and os.path.exists(path):
            self._load()

    def collection(self, name: str) -> MockCollection:
        return MockCollection(self, name)

    def collections(self) -> List[MockCollection]:
        with self._lock:
            return [MockCollection(self, name) for name in self._collections]

    def write_option(self, last_update_time=None, **kwargs) -> MockWriteOption:
        return MockWriteOption(last_update_time=last_update_time)

    def _docs(self, collection: str) -> Dict[str, Dict]:
        return self._collections.setdefault(collection, {})

    def _tick(self) -> int:
        return next(self._counter)

    def _load(self):
        with open(self._path, "r", encoding="utf-8") as f:
            raw = json.load(f, object_hook=_decode)
        for name, docs in raw.items():
            self._collections[name] = {
                doc_id: {"data": data, "update_time": self._tick()} for doc_id, data in docs.items()
            }
        logger.info(f"Mock DB loaded from {self._path}")

    def _flush(self):
        if not self._path:
            return
        snapshot = {
            name: {doc_id: entry["data"] for doc_id, entry in docs.items()}
            for name, docs in self._collections.items()
        }
        tmp_path = f"{self._path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, default=_encode, indent=2)
        os.replace(tmp_path, self._path)


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    return MockFirestore(path)
