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

"""Composes restaurant listing queries from sparse user filters."""

from collections.abc import Mapping, Sequence
from typing import Any, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from restaurants.errors import ValidationError
from shared.constants import (
    MAX_PRICE_TIER,
    MIN_PRICE_TIER,
    SORT_BY_RATING,
    SORT_BY_REVIEW,
)
from shared.types import RestaurantFilters

FILTER_FIELDS = ("category", "city", "price", "sort")

SORT_FIELDS = {
    SORT_BY_RATING: "avgRating",
    SORT_BY_REVIEW: "numRatings",
}


def to_filters(filters: Any) -> RestaurantFilters:
    """Accepts a RestaurantFilters, a mapping (e.g. query params) or None."""
    if filters is None:
        return RestaurantFilters()
    if isinstance(filters, RestaurantFilters):
        return filters
    if isinstance(filters, Mapping):
        return RestaurantFilters(**{key: filters.get(key) for key in FILTER_FIELDS})
    raise ValidationError(f"Unsupported filters type: {type(filters).__name__}")


def price_tier(price: Any) -> Optional[int]:
    """
    Returns the price tier for a price filter, or None if no price was given.

    An int is taken as the tier itself. Strings and sequences are markers
    whose length is the tier, so "$$" and [1, 1] both mean tier 2.
    """
    if price is None:
        return None
    if isinstance(price, bool):
        raise ValidationError("Price must be a tier or a price marker.")
    if isinstance(price, int):
        tier = price
    elif isinstance(price, (str, Sequence)):
        if len(price) == 0:
            return None
        tier = len(price)
    else:
        raise ValidationError("Price must be a tier or a price marker.")

    if not MIN_PRICE_TIER <= tier <= MAX_PRICE_TIER:
        raise ValidationError(
            f"Price tier must be between {MIN_PRICE_TIER} and {MAX_PRICE_TIER}."
        )
    return tier


def sort_field(sort: Optional[str]) -> str:
    if not sort:
        return SORT_FIELDS[SORT_BY_RATING]
    try:
        return SORT_FIELDS[sort]
    except KeyError:
        raise ValidationError(
            f"Unknown sort {sort!r}; expected one of {sorted(SORT_FIELDS)}."
        ) from None


def apply_query_filters(query, filters: Any = None):
    """
    Narrows a restaurants query with the given filters and orders it.

    Each present field adds an equality predicate; absent or empty fields add
    nothing. The ordering is added once, after all predicates, and ties are
    broken by document id ascending. The input query is never mutated.

    Args:
        query: A Firestore CollectionReference or Query over restaurants.
        filters: RestaurantFilters, a mapping with the same keys, or None.

    Returns:
        A new Firestore Query.

    Raises:
        ValidationError: If the price tier or sort mode is invalid.
    """
    filters = to_filters(filters)
    tier = price_tier(filters.price)
    order_field = sort_field(filters.sort)

    if filters.category:
        query = query.where(filter=FieldFilter("category", "==", filters.category))
    if filters.city:
        query = query.where(filter=FieldFilter("city", "==", filters.city))
    if tier is not None:
        query = query.where(filter=FieldFilter("price", "==", tier))

    query = query.order_by(order_field, direction=firestore.Query.DESCENDING)
    return query.order_by(
        FieldPath.document_id(), direction=firestore.Query.ASCENDING
    )
