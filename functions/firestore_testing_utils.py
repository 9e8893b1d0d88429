# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
In-memory stand-in for the parts of the Firestore client that the
restaurants package uses: collections, documents, equality queries with
ordering, transactions with optimistic conflict detection, write batches
and snapshot listeners.

Listeners fire synchronously in the committing thread. Transactions need
firestore.transactional swapped for fake_transactional, e.g.

    @patch("restaurants.ratings.firestore.transactional", fake_transactional)
"""

import copy
import threading
import uuid
from datetime import datetime, timezone

from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

DOCUMENT_ID = "__name__"
DESCENDING = "DESCENDING"


def _split(parts) -> tuple:
    segments = []
    for part in parts:
        segments.extend(segment for segment in str(part).split("/") if segment)
    return tuple(segments)


class FakeDocumentSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self._data = copy.deepcopy(data)

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)

    def get(self, field_path):
        return self._data[field_path]


class FakeQuery:
    def __init__(self, client, path, filters=(), orders=(), limit=None):
        self._client = client
        self._path = path
        self._filters = filters
        self._orders = orders
        self._limit = limit

    def _copy(self, **changes):
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
        }
        state.update(changes)
        return FakeQuery(self._client, self._path, **state)

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = (
                filter.field_path,
                filter.op_string,
                filter.value,
            )
        if op_string != "==":
            raise NotImplementedError(f"Unsupported operator: {op_string}")
        return self._copy(filters=self._filters + ((field_path, value),))

    def order_by(self, field_path, direction="ASCENDING"):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count):
        return self._copy(limit=count)

    def get(self, transaction=None):
        return self._client._run_query(self)

    def stream(self, transaction=None):
        return iter(self.get(transaction=transaction))

    def on_snapshot(self, callback):
        return self._client._listen(self, callback)


class FakeCollectionReference(FakeQuery):
    def __init__(self, client, path):
        super().__init__(client, path)

    @property
    def id(self) -> str:
        return self._path[-1]

    def document(self, document_id=None):
        document_id = document_id or uuid.uuid4().hex[:20]
        return FakeDocumentReference(self._client, self._path + (document_id,))


class FakeDocumentReference:
    def __init__(self, client, path):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path[-1]

    @property
    def path(self) -> str:
        return "/".join(self._path)

    def __eq__(self, other):
        return isinstance(other, FakeDocumentReference) and other._path == self._path

    def __hash__(self):
        return hash(self._path)

    def collection(self, collection_id):
        return FakeCollectionReference(self._client, self._path + _split([collection_id]))

    def get(self, transaction=None):
        return self._client._read(self, transaction)

    def set(self, document_data, merge=False):
        self._client._apply([("set", self._path, document_data, merge)])

    def update(self, field_updates):
        self._client._apply([("update", self._path, field_updates, False)])

    def on_snapshot(self, callback):
        return self._client._listen(self, callback)


class FakeWriteBatch:
    def __init__(self, client):
        self._client = client
        self._writes = []

    def set(self, reference, document_data, merge=False):
        self._writes.append(("set", reference._path, document_data, merge))

    def update(self, reference, field_updates):
        self._writes.append(("update", reference._path, field_updates, False))

    def commit(self):
        self._client._apply(self._writes)
        self._writes = []


class FakeTransaction(FakeWriteBatch):
    def __init__(self, client, max_attempts):
        super().__init__(client)
        self.max_attempts = max_attempts
        self.attempts = 0
        self._read_versions = {}

    def _begin(self):
        self.attempts += 1
        self._writes = []
        self._read_versions = {}

    def _commit(self):
        self._client._apply(self._writes, read_versions=self._read_versions)
        self._writes = []


def fake_transactional(to_wrap):
    """Mirrors firestore.transactional: re-runs to_wrap when the commit conflicts."""

    def wrapper(transaction, *args, **kwargs):
        for _ in range(transaction.max_attempts):
            transaction._begin()
            result = to_wrap(transaction, *args, **kwargs)
            try:
                transaction._commit()
            except exceptions.Aborted:
                continue
            return result
        raise ValueError(
            f"Failed to commit transaction in {transaction.max_attempts} attempts."
        )

    return wrapper


class FakeWatch:
    def __init__(self, client, target, callback):
        self._client = client
        self._target = target
        self._callback = callback
        self._last = None

    def _results(self):
        if isinstance(self._target, FakeDocumentReference):
            return [self._client._snapshot(self._target._path)]
        return self._client._run_query(self._target)

    def _fire(self, force=False):
        snapshots = self._results()
        state = [(snapshot.id, snapshot.to_dict()) for snapshot in snapshots]
        if not force and state == self._last:
            return
        self._last = state
        self._callback(snapshots, [], datetime.now(timezone.utc))

    def unsubscribe(self):
        with self._client._lock:
            if self in self._client._watches:
                self._client._watches.remove(self)


class FakeFirestore:
    def __init__(self, max_attempts: int = 5):
        self.max_attempts = max_attempts
        self.commit_count = 0
        self._docs = {}
        self._versions = {}
        self._watches = []
        self._lock = threading.RLock()
        self._commit_failures = []
        self._read_hooks = []

    # Client surface.

    def collection(self, *path):
        return FakeCollectionReference(self, _split(path))

    def document(self, *path):
        return FakeDocumentReference(self, _split(path))

    def transaction(self, max_attempts=None):
        return FakeTransaction(self, max_attempts or self.max_attempts)

    def batch(self):
        return FakeWriteBatch(self)

    # Test helpers.

    def seed(self, path: str, data: dict) -> None:
        self.document(path).set(data)

    def data(self, path: str):
        with self._lock:
            return copy.deepcopy(self._docs.get(_split([path])))

    def paths(self, collection_path: str) -> list:
        parent = _split([collection_path])
        with self._lock:
            return sorted("/".join(p) for p in self._docs if p[:-1] == parent)

    def fail_next_commit(self, error: Exception) -> None:
        self._commit_failures.append(error)

    def after_next_transactional_read(self, hook) -> None:
        """Runs hook() once, right after the next read made inside a transaction."""
        self._read_hooks.append(hook)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._watches)

    # Internals.

    def _snapshot(self, path):
        return FakeDocumentSnapshot(FakeDocumentReference(self, path), self._docs.get(path))

    def _read(self, reference, transaction):
        with self._lock:
            snapshot = self._snapshot(reference._path)
            if transaction is not None:
                transaction._read_versions[reference._path] = self._versions.get(
                    reference._path, 0
                )
        if transaction is not None and self._read_hooks:
            self._read_hooks.pop(0)()
        return snapshot

    def _run_query(self, query):
        with self._lock:
            docs = [
                (path, data)
                for path, data in self._docs.items()
                if path[:-1] == query._path
            ]
        for field_path, value in query._filters:
            docs = [
                (path, data)
                for path, data in docs
                if field_path in data and data[field_path] == value
            ]

        def sort_value(item, field_path):
            path, data = item
            return path[-1] if field_path == DOCUMENT_ID else data[field_path]

        orders = query._orders or ((DOCUMENT_ID, "ASCENDING"),)
        for field_path, _ in orders:
            if field_path != DOCUMENT_ID:
                docs = [(path, data) for path, data in docs if field_path in data]
        for field_path, direction in reversed(orders):
            docs.sort(
                key=lambda item: sort_value(item, field_path),
                reverse=direction == DESCENDING,
            )
        if query._limit is not None:
            docs = docs[: query._limit]
        return [
            FakeDocumentSnapshot(FakeDocumentReference(self, path), data)
            for path, data in docs
        ]

    def _apply(self, writes, read_versions=None):
        with self._lock:
            if self._commit_failures:
                raise self._commit_failures.pop(0)
            for path, version in (read_versions or {}).items():
                if self._versions.get(path, 0) != version:
                    raise exceptions.Aborted(f"Conflict on {'/'.join(path)}")

            existing = set(self._docs)
            for kind, path, _, _ in writes:
                if kind == "update" and path not in existing:
                    raise exceptions.NotFound(f"No document to update: {'/'.join(path)}")
                existing.add(path)

            now = datetime.now(timezone.utc)
            for kind, path, data, merge in writes:
                resolved = {
                    key: now if value is SERVER_TIMESTAMP else copy.deepcopy(value)
                    for key, value in data.items()
                }
                if kind == "set" and not merge:
                    self._docs[path] = resolved
                else:
                    self._docs.setdefault(path, {}).update(resolved)
                self._versions[path] = self._versions.get(path, 0) + 1
            self.commit_count += 1

            for watch in list(self._watches):
                if watch in self._watches:
                    watch._fire()

    def _listen(self, target, callback):
        with self._lock:
            watch = FakeWatch(self, target, callback)
            self._watches.append(watch)
            watch._fire(force=True)
            return watch
