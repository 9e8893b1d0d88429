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

MIN_RATING = 1
MAX_RATING = 5
MIN_PRICE_TIER = 1
MAX_PRICE_TIER = 4
MAX_REVIEW_TEXT_LENGTH = 1000
MAX_RESTAURANT_ID_LENGTH = 128
MAX_IMAGE_BYTES = 10 * 1024 * 1024

SORT_BY_RATING = "Rating"
SORT_BY_REVIEW = "Review"

REVIEW_SEPARATOR = "@"
