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

# Cloud functions for the restaurants backend - reviews and review summaries.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Third-party library imports
from firebase_admin import initialize_app, firestore
from firebase_functions import https_fn, logger, options
from google.api_core import exceptions
from google.genai import errors as genai_errors

# Local application imports
from models.gemini import GeminiInvalidResponseException
from restaurants import ratings, review_summary
from restaurants.errors import (
    NormalizationError,
    RestaurantNotFoundError,
    TransactionError,
    ValidationError,
)
from shared.json_utils import convert_keys
from shared.types import NewReview

initialize_app()


def _require_uid(req: https_fn.CallableRequest) -> str:
    if req.auth is None or not req.auth.uid:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.UNAUTHENTICATED,
            "Sign in to add a review.",
        )
    return req.auth.uid


def _restaurant_id(req: https_fn.CallableRequest) -> str:
    restaurant_id = req.data.get("restaurantId")
    if not restaurant_id:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
            "Must specify 'restaurantId' parameter.",
        )
    return restaurant_id


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def submit_review(req: https_fn.CallableRequest) -> dict:
    """
    Adds a review to a restaurant and updates its average rating.

    Args:
        req (https_fn.CallableRequest): The request, containing restaurantId,
            rating and text.

    Returns:
        A dictionary with the id of the new review.
    """
    uid = _require_uid(req)
    restaurant_id = _restaurant_id(req)
    review = NewReview(
        rating=req.data.get("rating"), text=req.data.get("text"), user_id=uid
    )

    db = firestore.client()
    try:
        review_id = ratings.submit_review(db, restaurant_id, review)
    except ValidationError as e:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.INVALID_ARGUMENT, str(e))
    except RestaurantNotFoundError as e:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.NOT_FOUND, str(e))
    except TransactionError as e:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.ABORTED, str(e))

    return convert_keys(
        {"restaurant_id": restaurant_id, "review_id": review_id}, "snake_to_camel"
    )


@https_fn.on_call(timeout_sec=120, memory=options.MemoryOption.MB_512)
def get_review_summary(req: https_fn.CallableRequest) -> dict:
    """
    Summarizes a restaurant's reviews with Gemini.

    Args:
        req (https_fn.CallableRequest): The request, containing restaurantId and
            optionally apiKey.

    Returns:
        A dictionary with the summary, or None for the summary when the
        restaurant has no reviews.
    """
    restaurant_id = _restaurant_id(req)
    api_key = req.data.get("apiKey")

    db = firestore.client()
    try:
        summary = review_summary.summarize_reviews(db, restaurant_id, api_key or None)
    except ValidationError as e:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.INVALID_ARGUMENT, str(e))
    except NormalizationError as e:
        logger.error(f"Unreadable reviews for {restaurant_id}: {e}")
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INTERNAL, "Stored reviews could not be read."
        )
    except exceptions.TooManyRequests as e:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.RESOURCE_EXHAUSTED,
            f"Gemini quota exceeded: {e}",
        )
    except (GeminiInvalidResponseException, genai_errors.APIError) as e:
        logger.error(f"Error summarizing reviews for {restaurant_id}: {e}")
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.UNAVAILABLE,
            f"Model call failed: {e}",
        )

    return convert_keys(
        {"restaurant_id": restaurant_id, "summary": summary}, "snake_to_camel"
    )
