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

"""Sample restaurants and reviews for local development and demos."""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from restaurants.records import restaurants_collection
from shared.constants import MAX_PRICE_TIER, MAX_RATING, MIN_PRICE_TIER, MIN_RATING
from shared.firebase_constants import RATINGS_COLLECTION

NAME_PREFIXES = [
    "Savory", "Gourmet", "Delicious", "Tasty", "Cozy", "Golden", "Little",
    "Rustic", "Urban", "Spicy",
]
NAME_SUFFIXES = [
    "Bites", "Kitchen", "Table", "Corner", "Garden", "Grill", "Bistro",
    "Eatery", "Cafe", "House",
]
CITIES = [
    "New York", "San Francisco", "London", "Paris", "Tokyo", "Sydney",
    "Berlin", "Mumbai", "Toronto", "Mexico City",
]
CATEGORIES = [
    "Italian", "Chinese", "Japanese", "Mexican", "Indian", "Mediterranean",
    "Caribbean", "Cajun", "German", "Russian", "Cuban", "Organic", "Tapas",
]
REVIEW_TEXTS = {
    1: ["Would never eat here again!", "Such an awful experience!"],
    2: ["Not my cup of tea.", "Unlikely that we'll be back."],
    3: ["Average food.", "It was okay, nothing special."],
    4: ["Friendly staff, good food.", "Would recommend to friends."],
    5: ["This is my favorite restaurant.", "Absolutely amazing dishes!"],
}
PHOTO_URL_TEMPLATE = (
    "https://storage.googleapis.com/firestorequickstarts.appspot.com/food_{}.png"
)
PHOTO_COUNT = 22


@dataclass
class FakeRestaurant:
    restaurant_data: dict
    ratings_data: List[dict] = field(default_factory=list)


def _fake_review(rng: random.Random, created: datetime, now: datetime) -> dict:
    rating = rng.randint(MIN_RATING, MAX_RATING)
    age = (now - created).total_seconds()
    return {
        "rating": rating,
        "text": rng.choice(REVIEW_TEXTS[rating]),
        "userId": f"fake-user-{rng.randint(1, 1000)}",
        "timestamp": created + timedelta(seconds=rng.uniform(0, age)),
    }


def generate_fake_restaurants_and_reviews(
    count: int = 20,
    max_reviews_per_restaurant: int = 5,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> List[FakeRestaurant]:
    """
    Builds sample restaurants, each with up to max_reviews_per_restaurant
    reviews. The rating triple of every restaurant is derived from its
    generated reviews.
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    restaurants = []
    for _ in range(count):
        created = now - timedelta(days=rng.randint(1, 365))
        ratings = [
            _fake_review(rng, created, now)
            for _ in range(rng.randint(0, max_reviews_per_restaurant))
        ]
        num_ratings = len(ratings)
        sum_rating = sum(r["rating"] for r in ratings)
        restaurant_data = {
            "name": f"{rng.choice(NAME_PREFIXES)} {rng.choice(NAME_SUFFIXES)}",
            "city": rng.choice(CITIES),
            "category": rng.choice(CATEGORIES),
            "price": rng.randint(MIN_PRICE_TIER, MAX_PRICE_TIER),
            "numRatings": num_ratings,
            "sumRating": sum_rating,
            "avgRating": sum_rating / num_ratings if num_ratings else 0,
            "photo": PHOTO_URL_TEMPLATE.format(rng.randint(1, PHOTO_COUNT)),
            "timestamp": created,
        }
        restaurants.append(FakeRestaurant(restaurant_data, ratings))
    return restaurants


def add_fake_restaurant(db, fake: FakeRestaurant) -> str:
    """Writes one restaurant and its reviews in a single batch; returns its id."""
    batch = db.batch()
    doc_ref = restaurants_collection(db).document()
    batch.set(doc_ref, fake.restaurant_data)
    for rating_data in fake.ratings_data:
        batch.set(doc_ref.collection(RATINGS_COLLECTION).document(), rating_data)
    batch.commit()
    return doc_ref.id


def add_fake_restaurants_and_reviews(db, restaurants: List[FakeRestaurant]) -> List[str]:
    return [add_fake_restaurant(db, fake) for fake in restaurants]
