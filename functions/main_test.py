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
# Standard library imports
import os
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

# Third-party library imports
from functions_framework import create_app

# Local application imports
from firestore_testing_utils import FakeFirestore, fake_transactional
from models.gemini import GeminiInvalidResponseException

MAIN_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "main.py")
CREATED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _seeded_db():
    db = FakeFirestore()
    db.seed(
        "restaurants/r1",
        {
            "name": "Alpha",
            "city": "Paris",
            "category": "French",
            "price": 3,
            "avgRating": 4.0,
            "numRatings": 1,
            "sumRating": 4,
            "timestamp": CREATED,
        },
    )
    db.seed(
        "restaurants/r1/ratings/v1",
        {"rating": 4, "text": "Lovely terrace", "userId": "u1", "timestamp": CREATED},
    )
    return db


class TestMainSubmitReview(unittest.TestCase):

    @patch("firebase_admin.initialize_app")
    def setUp(self, initialize_app_mock):
        # Create a test client for the function using functions-framework.
        self.client = create_app("submit_review", MAIN_PATH).test_client()
        self.db = _seeded_db()

    @patch("restaurants.ratings.firestore.transactional", fake_transactional)
    @patch("main._require_uid", return_value="u2")
    @patch("main.firestore")
    def test_submit_review(self, mock_firestore, mock_require_uid):
        mock_firestore.client.return_value = self.db
        payload = {"restaurantId": "r1", "rating": 2, "text": "Slow service"}

        response = self.client.post("/", json={"data": payload})

        self.assertEqual(
            response.status_code,
            200,
            f"Request failed with status {response.status_code}. Body: {response.get_data(as_text=True)}",
        )
        # Note: @on_call wraps successful responses in a `result` key.
        result = response.get_json()["result"]
        self.assertEqual(result["restaurantId"], "r1")

        restaurant = self.db.data("restaurants/r1")
        self.assertEqual(restaurant["numRatings"], 2)
        self.assertEqual(restaurant["sumRating"], 6)
        self.assertEqual(restaurant["avgRating"], 3.0)
        review = self.db.data(f"restaurants/r1/ratings/{result['reviewId']}")
        self.assertEqual(review["userId"], "u2")
        self.assertEqual(review["text"], "Slow service")

    def test_submit_review_requires_auth(self):
        payload = {"restaurantId": "r1", "rating": 2, "text": "Slow service"}

        response = self.client.post("/", json={"data": payload})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"]["status"], "UNAUTHENTICATED")

    @patch("main._require_uid", return_value="u2")
    def test_submit_review_missing_restaurant_id(self, mock_require_uid):
        response = self.client.post("/", json={"data": {"rating": 2, "text": "Hm"}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"]["status"], "INVALID_ARGUMENT")

    @patch("main._require_uid", return_value="u2")
    @patch("main.firestore")
    def test_submit_review_invalid_rating(self, mock_firestore, mock_require_uid):
        mock_firestore.client.return_value = self.db
        payload = {"restaurantId": "r1", "rating": 7, "text": "Off the scale"}

        response = self.client.post("/", json={"data": payload})

        self.assertEqual(response.status_code, 400)
        self.assertIn("between 1 and 5", response.get_json()["error"]["message"])
        self.assertEqual(self.db.data("restaurants/r1")["numRatings"], 1)

    @patch("restaurants.ratings.firestore.transactional", fake_transactional)
    @patch("main._require_uid", return_value="u2")
    @patch("main.firestore")
    def test_submit_review_unknown_restaurant(self, mock_firestore, mock_require_uid):
        mock_firestore.client.return_value = self.db
        payload = {"restaurantId": "missing", "rating": 3, "text": "Where?"}

        response = self.client.post("/", json={"data": payload})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["error"]["status"], "NOT_FOUND")


class TestMainGetReviewSummary(unittest.TestCase):

    @patch("firebase_admin.initialize_app")
    def setUp(self, initialize_app_mock):
        self.client = create_app("get_review_summary", MAIN_PATH).test_client()
        self.db = _seeded_db()

    @patch("restaurants.review_summary.gemini.call_predict")
    @patch("main.firestore")
    def test_get_review_summary(self, mock_firestore, mock_call_predict):
        mock_firestore.client.return_value = self.db
        mock_call_predict.return_value = "People enjoy the terrace."

        response = self.client.post(
            "/", json={"data": {"restaurantId": "r1", "apiKey": "user-key"}}
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.get_json()["result"],
            {"restaurantId": "r1", "summary": "People enjoy the terrace."},
        )
        self.assertEqual(mock_call_predict.call_args.kwargs["api_key"], "user-key")
        self.assertIn("Lovely terrace", mock_call_predict.call_args.args[0])

    @patch("restaurants.review_summary.gemini.call_predict")
    @patch("main.firestore")
    def test_get_review_summary_no_reviews(self, mock_firestore, mock_call_predict):
        self.db.seed("restaurants/r2", {"name": "Empty", "timestamp": CREATED})
        mock_firestore.client.return_value = self.db

        response = self.client.post("/", json={"data": {"restaurantId": "r2"}})

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.get_json()["result"]["summary"])
        mock_call_predict.assert_not_called()

    @patch("restaurants.review_summary.gemini.call_predict")
    @patch("main.firestore")
    def test_get_review_summary_model_failure(self, mock_firestore, mock_call_predict):
        mock_firestore.client.return_value = self.db
        mock_call_predict.side_effect = GeminiInvalidResponseException("empty")

        response = self.client.post("/", json={"data": {"restaurantId": "r1"}})

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.get_json()["error"]["status"], "UNAVAILABLE")

    @patch("restaurants.review_summary.gemini.call_predict")
    @patch("main.firestore")
    def test_get_review_summary_unreadable_review(self, mock_firestore, mock_call_predict):
        self.db.seed(
            "restaurants/r1/ratings/v2", {"text": "No stars", "timestamp": CREATED}
        )
        mock_firestore.client.return_value = self.db

        response = self.client.post("/", json={"data": {"restaurantId": "r1"}})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["error"]["status"], "INTERNAL")
        mock_call_predict.assert_not_called()


if __name__ == "__main__":
    unittest.main()
