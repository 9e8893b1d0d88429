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

import threading
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from firestore_testing_utils import FakeFirestore
from restaurants import snapshots
from restaurants.errors import CallbackContractError, NormalizationError
from shared.types import Restaurant, Review

CREATED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class SubscribeTest(unittest.TestCase):

    def setUp(self):
        self.db = FakeFirestore()
        self.db.seed(
            "restaurants/r1",
            {"name": "One", "city": "London", "avgRating": 4.0, "timestamp": CREATED},
        )
        self.query = self.db.collection("restaurants")

    def test_non_callable_listener_registers_nothing(self):
        for listener in (None, "callback", 42):
            with self.subTest(listener=listener):
                with self.assertRaises(CallbackContractError):
                    snapshots.subscribe(self.query, listener)
        self.assertEqual(self.db.listener_count, 0)

    def test_non_callable_error_listener(self):
        with self.assertRaises(CallbackContractError):
            snapshots.subscribe(self.query, print, on_error="nope")

    def test_initial_snapshot_then_changes(self):
        deliveries = []

        subscription = snapshots.subscribe(self.query, deliveries.append)
        self.db.seed("restaurants/r2", {"name": "Two", "timestamp": CREATED})

        self.assertEqual(len(deliveries), 2)
        self.assertEqual([r["id"] for r in deliveries[0]], ["r1"])
        self.assertEqual([r["id"] for r in deliveries[1]], ["r1", "r2"])
        self.assertEqual(deliveries[1][1]["timestamp"], CREATED)
        subscription.cancel()

    def test_missing_timestamp_is_none(self):
        self.db.seed("restaurants/r3", {"name": "No time"})
        deliveries = []

        with snapshots.subscribe(self.query, deliveries.append):
            pass

        by_id = {record["id"]: record for record in deliveries[0]}
        self.assertIsNone(by_id["r3"]["timestamp"])
        self.assertEqual(by_id["r1"]["timestamp"], CREATED)

    def test_unreadable_timestamp_goes_to_error_listener(self):
        on_change = MagicMock()
        on_error = MagicMock()
        subscription = snapshots.subscribe(self.query, on_change, on_error=on_error)

        self.db.seed("restaurants/bad", {"name": "Bad", "timestamp": {"seconds": 1}})

        self.assertEqual(on_change.call_count, 1)
        on_error.assert_called_once()
        self.assertIsInstance(on_error.call_args.args[0], NormalizationError)
        subscription.cancel()

    def test_out_of_range_epoch_goes_to_error_listener(self):
        on_error = MagicMock()
        subscription = snapshots.subscribe(self.query, MagicMock(), on_error=on_error)

        self.db.seed("restaurants/far", {"name": "Far", "timestamp": 1e20})
        subscription.cancel()

        on_error.assert_called_once()
        self.assertIsInstance(on_error.call_args.args[0], NormalizationError)

    def test_cancel_stops_delivery_and_is_idempotent(self):
        deliveries = []
        subscription = snapshots.subscribe(self.query, deliveries.append)

        subscription.cancel()
        subscription.cancel()
        self.db.seed("restaurants/r2", {"name": "Two"})

        self.assertTrue(subscription.cancelled)
        self.assertEqual(len(deliveries), 1)
        self.assertEqual(self.db.listener_count, 0)

    def test_cancel_from_inside_callback(self):
        deliveries = []

        def on_change(records):
            deliveries.append(records)
            if len(deliveries) == 2:
                subscription.cancel()

        subscription = snapshots.subscribe(self.query, on_change)
        self.db.seed("restaurants/r2", {"name": "Two"})
        self.db.seed("restaurants/r3", {"name": "Three"})

        self.assertEqual(len(deliveries), 2)
        self.assertTrue(subscription.cancelled)

    def test_no_delivery_after_cancel_with_concurrent_commits(self):
        deliveries = []
        stop = threading.Event()

        def writer():
            count = 0
            while not stop.is_set():
                count += 1
                self.db.seed("restaurants/r1", {"name": "One", "visits": count})

        subscription = snapshots.subscribe(self.query, deliveries.append)
        thread = threading.Thread(target=writer)
        thread.start()
        try:
            while len(deliveries) < 3:
                pass
            subscription.cancel()
            delivered_at_cancel = len(deliveries)
            for _ in range(50):
                self.db.seed("restaurants/r1", {"name": "One", "visits": -1})
                self.db.seed("restaurants/r1", {"name": "One", "visits": -2})
        finally:
            stop.set()
            thread.join()

        self.assertEqual(len(deliveries), delivered_at_cancel)

    def test_document_source_delivers_single_record(self):
        deliveries = []
        doc_ref = self.db.document("restaurants/r9")

        subscription = snapshots.subscribe(doc_ref, deliveries.append)
        self.db.seed("restaurants/r9", {"name": "Nine"})
        subscription.cancel()

        self.assertIsNone(deliveries[0])
        self.assertEqual(deliveries[1]["id"], "r9")
        self.assertEqual(deliveries[1]["name"], "Nine")


class SnapshotStreamTest(unittest.TestCase):

    def setUp(self):
        self.db = FakeFirestore()
        self.db.seed("restaurants/r1", {"name": "One"})

    def test_yields_initial_snapshot_and_cancels_on_close(self):
        stream = snapshots.iter_snapshots(self.db.collection("restaurants"), timeout=0.1)

        iterator = iter(stream)
        first = next(iterator)
        self.assertEqual(self.db.listener_count, 1)
        iterator.close()

        self.assertEqual([record["id"] for record in first], ["r1"])
        self.assertEqual(self.db.listener_count, 0)

    def test_stream_is_restartable(self):
        stream = snapshots.iter_snapshots(self.db.collection("restaurants"), timeout=0.05)

        first_run = list(stream)
        self.db.seed("restaurants/r2", {"name": "Two"})
        second_run = list(stream)

        self.assertEqual(len(first_run), 1)
        self.assertEqual([r["id"] for r in second_run[0]], ["r1", "r2"])
        self.assertEqual(self.db.listener_count, 0)

    def test_normalization_error_is_raised_to_consumer(self):
        self.db.seed("restaurants/bad", {"timestamp": object()})
        stream = snapshots.iter_snapshots(self.db.collection("restaurants"), timeout=0.05)

        with self.assertRaises(NormalizationError):
            list(stream)
        self.assertEqual(self.db.listener_count, 0)


class TypedSnapshotsTest(unittest.TestCase):

    def setUp(self):
        self.db = FakeFirestore()
        self.db.seed(
            "restaurants/r1",
            {
                "name": "One",
                "city": "Paris",
                "category": "French",
                "price": 3,
                "avgRating": 4.0,
                "numRatings": 1,
                "sumRating": 4,
                "timestamp": CREATED,
            },
        )
        self.db.seed(
            "restaurants/r1/ratings/v1",
            {"rating": 4, "text": "Bon", "userId": "u1", "timestamp": CREATED},
        )

    def test_restaurant_by_id(self):
        deliveries = []

        subscription = snapshots.get_restaurant_snapshot_by_id(self.db, "r1", deliveries.append)
        self.db.document("restaurants/r1").update({"photo": "https://img.test/1.png"})
        subscription.cancel()

        self.assertIsInstance(deliveries[0], Restaurant)
        self.assertEqual(deliveries[0].avg_rating, 4.0)
        self.assertEqual(deliveries[0].timestamp, CREATED)
        self.assertEqual(deliveries[1].photo, "https://img.test/1.png")

    def test_restaurants_with_filters(self):
        deliveries = []

        subscription = snapshots.get_restaurants_snapshot(
            self.db, deliveries.append, {"city": "London"}
        )
        subscription.cancel()

        self.assertEqual(deliveries, [[]])

    def test_reviews(self):
        deliveries = []

        subscription = snapshots.get_reviews_snapshot_by_restaurant_id(
            self.db, "r1", deliveries.append
        )
        subscription.cancel()

        self.assertEqual(
            deliveries[0],
            [Review(id="v1", rating=4, text="Bon", user_id="u1", timestamp=CREATED)],
        )

    def test_review_missing_rating_goes_to_error_listener(self):
        deliveries = []
        errors = []
        subscription = snapshots.get_reviews_snapshot_by_restaurant_id(
            self.db, "r1", deliveries.append, on_error=errors.append
        )

        self.db.seed("restaurants/r1/ratings/v2", {"text": "t", "timestamp": CREATED})
        subscription.cancel()

        self.assertEqual(len(deliveries), 1)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], NormalizationError)
        self.assertIn("rating", str(errors[0]))

    def test_malformed_review_is_logged_without_error_listener(self):
        deliveries = []
        subscription = snapshots.get_reviews_snapshot_by_restaurant_id(
            self.db, "r1", deliveries.append
        )

        with self.assertLogs("restaurants.snapshots", level="ERROR"):
            self.db.seed("restaurants/r1/ratings/v2", {"rating": 3, "timestamp": CREATED})
        subscription.cancel()

        self.assertEqual(len(deliveries), 1)


if __name__ == "__main__":
    unittest.main()
