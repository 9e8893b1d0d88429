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
Reads restaurants and reviews, converting Firestore snapshots to records.

A record is the document data plus its id, with the backend timestamp
normalized to an aware datetime. Records are then turned into the
dataclasses in shared.types.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from dacite import Config, DaciteError, from_dict
from firebase_admin import firestore

from restaurants.errors import (
    NormalizationError,
    RestaurantNotFoundError,
    ValidationError,
)
from restaurants.filters import apply_query_filters
from shared.constants import MAX_RESTAURANT_ID_LENGTH
from shared.firebase_constants import RATINGS_COLLECTION, RESTAURANTS_COLLECTION
from shared.json_utils import convert_keys
from shared.types import Restaurant, Review

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = "timestamp"


def normalize_timestamp(value: Any) -> Optional[datetime]:
    """
    Converts a stored timestamp to an aware UTC datetime.

    Firestore already returns datetimes for timestamp fields, but documents
    written by other clients may hold protobuf timestamps, epoch seconds or
    ISO-8601 strings. A missing value stays None.

    Raises:
        NormalizationError: If the value has no datetime interpretation.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if hasattr(value, "ToDatetime"):
        return value.ToDatetime(tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise NormalizationError("Cannot convert a boolean to a timestamp.")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise NormalizationError(f"Epoch out of range: {value!r}") from e
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise NormalizationError(f"Invalid timestamp string: {value!r}") from e
        return normalize_timestamp(parsed)
    raise NormalizationError(
        f"Cannot convert {type(value).__name__} to a timestamp."
    )


def snapshot_to_record(snapshot) -> dict:
    """Returns the snapshot's data with its id and a normalized timestamp."""
    data = snapshot.to_dict() or {}
    record = {"id": snapshot.id, **data}
    record[TIMESTAMP_FIELD] = normalize_timestamp(data.get(TIMESTAMP_FIELD))
    return record


def _from_record(data_class, record: dict):
    try:
        return from_dict(
            data_class=data_class,
            data=convert_keys(record, "camel_to_snake"),
            config=Config(check_types=False),
        )
    except DaciteError as e:
        raise NormalizationError(
            f"Record {record.get('id')!r} is not a valid {data_class.__name__}: {e}"
        ) from e


def restaurant_from_record(record: dict) -> Restaurant:
    return _from_record(Restaurant, record)


def review_from_record(record: dict) -> Review:
    """
    Raises:
        NormalizationError: If the record lacks a required field.
    """
    return _from_record(Review, record)


def restaurant_from_snapshot(snapshot) -> Restaurant:
    return restaurant_from_record(snapshot_to_record(snapshot))


def review_from_snapshot(snapshot) -> Review:
    return review_from_record(snapshot_to_record(snapshot))


def validate_restaurant_id(restaurant_id: Any) -> str:
    if not restaurant_id or not isinstance(restaurant_id, str):
        raise ValidationError("No restaurant ID has been provided.")
    if "/" in restaurant_id or len(restaurant_id) > MAX_RESTAURANT_ID_LENGTH:
        raise ValidationError(f"Invalid restaurant ID: {restaurant_id!r}")
    return restaurant_id


def restaurants_collection(db):
    return db.collection(RESTAURANTS_COLLECTION)


def restaurant_ref(db, restaurant_id: str):
    return restaurants_collection(db).document(validate_restaurant_id(restaurant_id))


def reviews_query(db, restaurant_id: str):
    """Reviews of a restaurant, newest first."""
    return (
        restaurant_ref(db, restaurant_id)
        .collection(RATINGS_COLLECTION)
        .order_by(TIMESTAMP_FIELD, direction=firestore.Query.DESCENDING)
    )


def get_restaurants(db, filters=None) -> List[Restaurant]:
    query = apply_query_filters(restaurants_collection(db), filters)
    return [restaurant_from_snapshot(snapshot) for snapshot in query.stream()]


def get_restaurant_by_id(db, restaurant_id: str) -> Restaurant:
    """
    Fetches one restaurant.

    Raises:
        ValidationError: If restaurant_id is empty or malformed.
        RestaurantNotFoundError: If no such restaurant exists.
    """
    snapshot = restaurant_ref(db, restaurant_id).get()
    if not snapshot.exists:
        raise RestaurantNotFoundError(restaurant_id)
    return restaurant_from_snapshot(snapshot)


def get_reviews_by_restaurant_id(db, restaurant_id: str) -> List[Review]:
    reviews = [
        review_from_snapshot(snapshot)
        for snapshot in reviews_query(db, restaurant_id).stream()
    ]
    logger.debug("Loaded %d reviews for restaurant %s", len(reviews), restaurant_id)
    return reviews
