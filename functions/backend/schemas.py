"""
Pydantic schemas for the restaurants API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class RestaurantResponse(BaseModel):
    id: str
    name: str
    city: str
    category: str
    price: int
    avg_rating: float
    num_ratings: int
    sum_rating: float
    photo: Optional[str] = None
    timestamp: Optional[datetime] = None


class ListRestaurantsResponse(BaseModel):
    restaurants: list[RestaurantResponse]


class ReviewResponse(BaseModel):
    id: str
    rating: float
    text: str
    user_id: Optional[str] = None
    timestamp: Optional[datetime] = None


class ListReviewsResponse(BaseModel):
    reviews: list[ReviewResponse]


class SubmitReviewRequest(BaseModel):
    # Range and length are checked by restaurants.ratings.validate_review.
    rating: Optional[float] = None
    text: Optional[str] = None


class SubmitReviewResponse(BaseModel):
    status: Literal["ok"]
    restaurant_id: str
    review_id: str


class RestaurantImageResponse(BaseModel):
    restaurant_id: str
    photo: str


class ReviewSummaryResponse(BaseModel):
    restaurant_id: str
    summary: Optional[str] = None
