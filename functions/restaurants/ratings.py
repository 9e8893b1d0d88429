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

"""Adds reviews to restaurants while keeping the aggregate rating in step."""

import logging
import math
from collections.abc import Mapping
from dataclasses import asdict
from typing import Any

from firebase_admin import firestore
from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from restaurants.errors import (
    RestaurantError,
    RestaurantNotFoundError,
    TransactionError,
    ValidationError,
)
from restaurants.records import restaurant_ref
from shared.constants import MAX_RATING, MAX_REVIEW_TEXT_LENGTH, MIN_RATING
from shared.firebase_constants import RATINGS_COLLECTION
from shared.json_utils import convert_keys
from shared.types import NewReview

logger = logging.getLogger(__name__)


def validate_review(review: Any) -> NewReview:
    """
    Checks a submitted review and returns it as a NewReview.

    Accepts a NewReview or a mapping with "rating", "text" and optionally
    "userId"/"user_id". Numeric strings are accepted for the rating, as
    submitted by HTML forms.

    Raises:
        ValidationError: If the review is missing, the rating is not a number
            in range or the text is empty or too long.
    """
    if not review:
        raise ValidationError("A valid review has not been provided.")
    if isinstance(review, Mapping):
        fields = convert_keys(dict(review), "camel_to_snake")
        review = NewReview(
            rating=fields.get("rating"),
            text=fields.get("text"),
            user_id=fields.get("user_id"),
        )
    elif not isinstance(review, NewReview):
        raise ValidationError("A valid review has not been provided.")

    rating = review.rating
    if rating is None or isinstance(rating, bool):
        raise ValidationError("Review rating must be a number.")
    try:
        rating = float(rating)
    except (TypeError, ValueError):
        raise ValidationError("Review rating must be a number.") from None
    if math.isnan(rating) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Review rating must be between {MIN_RATING} and {MAX_RATING}."
        )
    if rating.is_integer():
        rating = int(rating)

    text = review.text
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Review text must not be empty.")
    if len(text) > MAX_REVIEW_TEXT_LENGTH:
        raise ValidationError("Review text exceeds max length.")

    return NewReview(rating=rating, text=text, user_id=review.user_id)


def next_rating_stats(data: dict | None, rating: float) -> dict:
    """
    Returns the restaurant's rating triple after adding one rating.

    All three fields are always returned together so they are written in the
    same update.
    """
    data = data or {}
    num_ratings = data.get("numRatings") or 0
    sum_rating = data.get("sumRating") or 0
    new_num_ratings = num_ratings + 1
    new_sum_rating = sum_rating + rating
    return {
        "numRatings": new_num_ratings,
        "sumRating": new_sum_rating,
        "avgRating": new_sum_rating / new_num_ratings,
    }


def _update_with_rating(transaction, restaurant_doc_ref, review_doc_ref, review):
    # Read through the transaction so a retry after a conflict re-reads it.
    snapshot = restaurant_doc_ref.get(transaction=transaction)
    if not snapshot.exists:
        raise RestaurantNotFoundError(restaurant_doc_ref.id)

    stats = next_rating_stats(snapshot.to_dict(), review.rating)
    transaction.update(restaurant_doc_ref, stats)

    review_data = convert_keys(asdict(review), "snake_to_camel")
    review_data["timestamp"] = SERVER_TIMESTAMP
    transaction.set(review_doc_ref, review_data)
    return stats


def submit_review(db, restaurant_id: str, review: Any) -> str:
    """
    Appends a review and advances the restaurant's rating in one transaction.

    The restaurant's numRatings, sumRating and avgRating are read, advanced
    and written back together with the new review document. Either both
    writes commit or neither does.

    Args:
        db: A Firestore client.
        restaurant_id (str): The restaurant document id.
        review: A NewReview or a mapping with rating, text and userId.

    Returns:
        str: The id of the new review document.

    Raises:
        ValidationError: If the id or review is missing or malformed.
        RestaurantNotFoundError: If the restaurant does not exist.
        TransactionError: If the transaction could not be committed.
    """
    restaurant_doc_ref = restaurant_ref(db, restaurant_id)
    review = validate_review(review)
    review_doc_ref = restaurant_doc_ref.collection(RATINGS_COLLECTION).document()

    transaction = db.transaction()
    try:
        stats = firestore.transactional(_update_with_rating)(
            transaction, restaurant_doc_ref, review_doc_ref, review
        )
    except RestaurantError:
        raise
    except (exceptions.GoogleAPICallError, ValueError) as e:
        logger.error(
            "There was an error adding the rating to restaurant %s: %s",
            restaurant_id,
            e,
        )
        raise TransactionError(
            f"Could not add the review to restaurant {restaurant_id}."
        ) from e

    logger.info(
        "Added review %s to restaurant %s (numRatings=%s)",
        review_doc_ref.id,
        restaurant_id,
        stats["numRatings"],
    )
    return review_doc_ref.id
