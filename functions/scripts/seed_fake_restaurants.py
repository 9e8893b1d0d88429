"""
Seed Firestore with sample restaurants and reviews.

Each restaurant is written together with its reviews in one batch, so a
failure leaves no partially-seeded restaurant behind.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from google.api_core import exceptions

from backend.config import get_settings
from backend.dependencies import build_db_client
from restaurants import fake_data


logger = logging.getLogger(__name__)


def seed(db, restaurants) -> int:
    added = 0
    for fake in restaurants:
        try:
            restaurant_id = fake_data.add_fake_restaurant(db, fake)
        except exceptions.GoogleAPICallError as e:
            logger.error(
                "Could not add %s: %s", fake.restaurant_data.get("name"), e
            )
            continue
        logger.info(
            "Added %s (%s) with %d reviews",
            fake.restaurant_data["name"],
            restaurant_id,
            len(fake.ratings_data),
        )
        added += 1
    return added


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--count",
        type=int,
        default=20,
        help="Number of restaurants to add",
    )
    parser.add_argument(
        "--max-reviews",
        type=int,
        default=5,
        help="Max number of reviews per restaurant",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible data",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate the data and report it without writing",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    restaurants = fake_data.generate_fake_restaurants_and_reviews(
        count=args.count,
        max_reviews_per_restaurant=args.max_reviews,
        rng=random.Random(args.seed),
    )

    if args.dry_run:
        for fake in restaurants:
            logger.info(
                "Would add %s in %s with %d reviews",
                fake.restaurant_data["name"],
                fake.restaurant_data["city"],
                len(fake.ratings_data),
            )
        return 0

    db = build_db_client(get_settings())
    added = seed(db, restaurants)
    logger.info("Added %d of %d restaurants", added, len(restaurants))
    return 0 if added == len(restaurants) else 1


if __name__ == "__main__":
    sys.exit(main())
