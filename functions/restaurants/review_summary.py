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

"""One-sentence summaries of a restaurant's reviews, written by Gemini."""

import logging
from typing import Optional

from models import gemini, prompts
from restaurants.records import get_reviews_by_restaurant_id

logger = logging.getLogger(__name__)


def summarize_reviews(db, restaurant_id: str, api_key: str | None = None) -> Optional[str]:
    """
    Summarizes what reviewers think of a restaurant.

    Returns None, without calling the model, when there are no reviews.

    Raises:
        ValidationError: If restaurant_id is empty or malformed.
        GeminiInvalidResponseException: If the model returned no text.
    """
    reviews = get_reviews_by_restaurant_id(db, restaurant_id)
    review_texts = [review.text for review in reviews if review.text]
    if not review_texts:
        return None

    prompt = prompts.make_review_summary_prompt(review_texts)
    summary = gemini.call_predict(prompt, api_key=api_key)
    logger.info(
        "Summarized %d reviews for restaurant %s", len(review_texts), restaurant_id
    )
    return summary.strip()
