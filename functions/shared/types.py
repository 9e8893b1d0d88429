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

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence, Union

PriceFilter = Union[int, str, Sequence[Any]]


@dataclass
class Restaurant:
    """A restaurant document from the restaurants collection."""

    id: str
    name: str = ""
    city: str = ""
    category: str = ""
    price: int = 1
    avg_rating: float = 0.0
    num_ratings: int = 0
    sum_rating: float = 0.0
    photo: Optional[str] = None
    # Normalized from the Firestore timestamp; None if the field was absent.
    timestamp: Optional[datetime] = None


@dataclass
class Review:
    """A review document from a restaurant's ratings subcollection."""

    id: str
    rating: float
    text: str
    user_id: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass
class NewReview:
    """A review as submitted by a user, before it is persisted."""

    rating: float
    text: str
    user_id: Optional[str] = None


@dataclass
class RestaurantFilters:
    """
    Sparse filters for the restaurant listing.

    Price is either an explicit tier or a marker whose length is the tier,
    e.g. "$$" or [1, 1] for tier 2.
    """

    category: Optional[str] = None
    city: Optional[str] = None
    price: Optional[PriceFilter] = None
    sort: Optional[str] = None
