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
Real-time listeners over restaurants and reviews.

Firestore runs snapshot callbacks on a background thread owned by the
client library. Subscription wraps a listener so that delivery and
cancellation never interleave: once cancel() returns, the callback is not
invoked again.
"""

import logging
import queue
import threading
from typing import Any, Callable, Optional

from restaurants.errors import CallbackContractError, NormalizationError
from restaurants.filters import apply_query_filters
from restaurants.records import (
    restaurant_from_snapshot,
    restaurant_ref,
    restaurants_collection,
    review_from_snapshot,
    reviews_query,
    snapshot_to_record,
)

logger = logging.getLogger(__name__)


def _is_document_source(source) -> bool:
    # Queries and collections can be filtered; document references cannot.
    return not hasattr(source, "where")


class Subscription:
    """A cancellable registration of a snapshot listener."""

    def __init__(
        self,
        on_change: Callable[[Any], None],
        transform: Callable[[list], Any],
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self._on_change = on_change
        self._transform = transform
        self._on_error = on_error
        self._lock = threading.RLock()
        self._cancelled = False
        self._watch = None
        self._delivering_thread: Optional[int] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _attach(self, watch) -> None:
        with self._lock:
            if not self._cancelled:
                self._watch = watch
                return
        # Cancelled from inside the initial delivery, before on_snapshot returned.
        watch.unsubscribe()

    def _deliver(self, snapshots, changes, read_time) -> None:
        with self._lock:
            if self._cancelled:
                return
            try:
                payload = self._transform(snapshots)
            except NormalizationError as e:
                self._report(e)
                return
            self._delivering_thread = threading.get_ident()
            try:
                self._on_change(payload)
            finally:
                self._delivering_thread = None

    def _report(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)
        else:
            logger.error("Dropped snapshot that could not be normalized: %s", error)

    def cancel(self) -> None:
        """Detaches the listener. Safe to call repeatedly and from the callback."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            watch, self._watch = self._watch, None
            in_callback = self._delivering_thread == threading.get_ident()
        if watch is None:
            return
        if in_callback:
            # The listener thread cannot join itself.
            threading.Thread(target=watch.unsubscribe, daemon=True).start()
        else:
            watch.unsubscribe()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


def subscribe(
    source,
    on_change: Callable[[Any], None],
    *,
    normalize: Callable[[Any], Any] = snapshot_to_record,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Subscription:
    """
    Listens to a query or a document and reports every snapshot.

    Query sources deliver a list of normalized records. Document sources
    deliver a single normalized record, or None while the document does not
    exist. The first delivery is the current state; later ones follow each
    committed change, in commit order.

    Args:
        source: A Firestore Query, CollectionReference or DocumentReference.
        on_change: Called with each delivery.
        normalize: Converts one DocumentSnapshot. Defaults to a plain record
            with a normalized timestamp.
        on_error: Called with a NormalizationError when a snapshot cannot be
            normalized. When omitted the error is logged.

    Returns:
        Subscription: Call cancel() to stop listening.

    Raises:
        CallbackContractError: If on_change (or on_error) is not callable.
            No listener is registered in that case.
    """
    if not callable(on_change):
        raise CallbackContractError("The callback parameter is not a function.")
    if on_error is not None and not callable(on_error):
        raise CallbackContractError("The error callback is not a function.")

    if _is_document_source(source):

        def transform(snapshots):
            for snapshot in snapshots:
                if snapshot.exists:
                    return normalize(snapshot)
            return None

    else:

        def transform(snapshots):
            return [normalize(snapshot) for snapshot in snapshots]

    subscription = Subscription(on_change, transform, on_error)
    subscription._attach(source.on_snapshot(subscription._deliver))
    return subscription


class SnapshotStream:
    """
    Iterable over successive snapshot deliveries.

    Each iteration opens its own subscription, so the stream can be iterated
    again after a previous iteration stopped. The subscription is cancelled
    when the iterator is closed or exhausted.
    """

    def __init__(self, source, normalize=snapshot_to_record, timeout=None):
        self.source = source
        self.normalize = normalize
        self.timeout = timeout

    def __iter__(self):
        deliveries: queue.Queue = queue.Queue()
        subscription = subscribe(
            self.source,
            deliveries.put,
            normalize=self.normalize,
            on_error=deliveries.put,
        )
        try:
            while True:
                try:
                    item = deliveries.get(timeout=self.timeout)
                except queue.Empty:
                    return
                if isinstance(item, NormalizationError):
                    raise item
                yield item
        finally:
            subscription.cancel()


def iter_snapshots(source, *, normalize=snapshot_to_record, timeout=None):
    """Returns a restartable iterable of deliveries; stops after timeout seconds idle."""
    return SnapshotStream(source, normalize=normalize, timeout=timeout)


def get_restaurants_snapshot(db, on_change, filters=None, *, on_error=None) -> Subscription:
    query = apply_query_filters(restaurants_collection(db), filters)
    return subscribe(
        query, on_change, normalize=restaurant_from_snapshot, on_error=on_error
    )


def get_restaurant_snapshot_by_id(
    db, restaurant_id: str, on_change, *, on_error=None
) -> Subscription:
    return subscribe(
        restaurant_ref(db, restaurant_id),
        on_change,
        normalize=restaurant_from_snapshot,
        on_error=on_error,
    )


def get_reviews_snapshot_by_restaurant_id(
    db, restaurant_id: str, on_change, *, on_error=None
) -> Subscription:
    return subscribe(
        reviews_query(db, restaurant_id),
        on_change,
        normalize=review_from_snapshot,
        on_error=on_error,
    )
