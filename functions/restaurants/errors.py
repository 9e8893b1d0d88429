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

"""Errors raised by the restaurant data-access layer."""


class RestaurantError(Exception):
    """Base class for restaurant data-access errors."""


class ValidationError(RestaurantError, ValueError):
    """Caller input is missing or malformed. Raised before any network call."""


class RestaurantNotFoundError(RestaurantError):
    """The referenced restaurant document does not exist."""

    def __init__(self, restaurant_id: str):
        super().__init__(f"Restaurant {restaurant_id} does not exist.")
        self.restaurant_id = restaurant_id


class TransactionError(RestaurantError):
    """An atomic update could not be committed after retries."""


class CallbackContractError(RestaurantError, TypeError):
    """A non-callable listener was supplied to a subscription."""


class NormalizationError(RestaurantError):
    """A stored field could not be coerced to its native Python type."""
