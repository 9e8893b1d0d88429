"""
HTTP routes for the restaurants API.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from google.api_core import exceptions
from google.genai import errors as genai_errors

from backend.config import Settings
from backend.dependencies import (
    CurrentUser,
    get_app_settings,
    get_db_client,
    get_storage_client,
    require_user,
)
from backend.schemas import (
    ListRestaurantsResponse,
    ListReviewsResponse,
    RestaurantImageResponse,
    RestaurantResponse,
    ReviewResponse,
    ReviewSummaryResponse,
    SubmitReviewRequest,
    SubmitReviewResponse,
)
from backend.storage import StorageClient
from models.gemini import GeminiInvalidResponseException
from restaurants import images, ratings, records, review_summary
from restaurants.errors import (
    NormalizationError,
    RestaurantError,
    RestaurantNotFoundError,
    TransactionError,
    ValidationError,
)
from shared.types import NewReview, RestaurantFilters

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(error: RestaurantError) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, RestaurantNotFoundError):
        return HTTPException(status_code=404, detail="Restaurant not found")
    if isinstance(error, TransactionError):
        return HTTPException(
            status_code=409, detail="The review could not be saved. Please retry."
        )
    if isinstance(error, NormalizationError):
        logger.error("Stored restaurant data could not be read: %s", error)
        return HTTPException(status_code=500, detail="Stored data could not be read")
    return HTTPException(status_code=500, detail=str(error))


def _price_filter(price: str | None):
    """A digit string is a tier; any other number is rejected; the rest are markers."""
    if not price:
        return None
    if price.isdigit():
        return int(price)
    try:
        float(price)
    except ValueError:
        return price
    raise HTTPException(
        status_code=400, detail="Price tier must be a whole number between 1 and 4."
    )


@router.get("/restaurants", response_model=ListRestaurantsResponse)
def list_restaurants(
    category: str | None = Query(None),
    city: str | None = Query(None),
    price: str | None = Query(
        None, description='Price marker, e.g. "$$" for tier 2, or a tier 1-4'
    ),
    sort: str | None = Query(None, description='"Rating" (default) or "Review"'),
    db=Depends(get_db_client),
):
    filters = RestaurantFilters(
        category=category, city=city, price=_price_filter(price), sort=sort
    )
    try:
        restaurants = records.get_restaurants(db, filters)
    except RestaurantError as e:
        raise _http_error(e) from e
    return ListRestaurantsResponse(
        restaurants=[RestaurantResponse(**asdict(r)) for r in restaurants]
    )


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
def get_restaurant(restaurant_id: str, db=Depends(get_db_client)):
    try:
        restaurant = records.get_restaurant_by_id(db, restaurant_id)
    except RestaurantError as e:
        raise _http_error(e) from e
    return RestaurantResponse(**asdict(restaurant))


@router.get("/restaurants/{restaurant_id}/reviews", response_model=ListReviewsResponse)
def list_reviews(restaurant_id: str, db=Depends(get_db_client)):
    try:
        reviews = records.get_reviews_by_restaurant_id(db, restaurant_id)
    except RestaurantError as e:
        raise _http_error(e) from e
    return ListReviewsResponse(reviews=[ReviewResponse(**asdict(r)) for r in reviews])


@router.post(
    "/restaurants/{restaurant_id}/reviews",
    response_model=SubmitReviewResponse,
    status_code=201,
)
def submit_review(
    restaurant_id: str,
    payload: SubmitReviewRequest,
    user: CurrentUser = Depends(require_user),
    db=Depends(get_db_client),
):
    """
    Adds a review. Responds only once the transaction has committed, so the
    client keeps its review form open until it sees success.
    """
    review = NewReview(rating=payload.rating, text=payload.text, user_id=user.uid)
    try:
        review_id = ratings.submit_review(db, restaurant_id, review)
    except RestaurantError as e:
        raise _http_error(e) from e
    return SubmitReviewResponse(
        status="ok", restaurant_id=restaurant_id, review_id=review_id
    )


@router.post(
    "/restaurants/{restaurant_id}/image", response_model=RestaurantImageResponse
)
async def update_restaurant_image(
    restaurant_id: str,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(require_user),
    db=Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Image file required")

    data = await file.read()
    try:
        photo = images.update_restaurant_image(
            db, storage, restaurant_id, file.filename or "", data, file.content_type
        )
    except RestaurantError as e:
        raise _http_error(e) from e
    logger.info("User %s updated the photo of restaurant %s", user.uid, restaurant_id)
    return RestaurantImageResponse(restaurant_id=restaurant_id, photo=photo)


@router.get(
    "/restaurants/{restaurant_id}/review-summary",
    response_model=ReviewSummaryResponse,
)
def get_review_summary(
    restaurant_id: str,
    db=Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    try:
        summary = review_summary.summarize_reviews(
            db, restaurant_id, api_key=settings.gemini_api_key
        )
    except RestaurantError as e:
        raise _http_error(e) from e
    except exceptions.TooManyRequests as e:
        raise HTTPException(status_code=429, detail="Gemini quota exceeded.") from e
    except (GeminiInvalidResponseException, genai_errors.APIError) as e:
        logger.error("Error summarizing reviews for %s: %s", restaurant_id, e)
        raise HTTPException(
            status_code=502, detail="Error summarizing reviews."
        ) from e
    return ReviewSummaryResponse(restaurant_id=restaurant_id, summary=summary)
