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

"""Uploads restaurant photos and records their public URL."""

import logging
import posixpath

from google.api_core import exceptions

from restaurants.errors import RestaurantNotFoundError, ValidationError
from restaurants.records import restaurant_ref, validate_restaurant_id
from shared.constants import MAX_IMAGE_BYTES
from shared.firebase_constants import IMAGES_STORAGE_PREFIX

logger = logging.getLogger(__name__)


def image_storage_path(restaurant_id: str, filename: str) -> str:
    """Returns images/<restaurant_id>/<filename>, dropping any directories."""
    name = posixpath.basename(filename.replace("\\", "/"))
    if not name or name in (".", ".."):
        raise ValidationError("A valid image has not been provided.")
    return f"{IMAGES_STORAGE_PREFIX}/{restaurant_id}/{name}"


def update_restaurant_image_reference(db, restaurant_id: str, public_image_url: str):
    """
    Points the restaurant's photo at public_image_url.

    Raises:
        RestaurantNotFoundError: If the restaurant does not exist.
    """
    if not public_image_url:
        raise ValidationError("No image URL has been provided.")
    try:
        restaurant_ref(db, restaurant_id).update({"photo": public_image_url})
    except exceptions.NotFound as e:
        raise RestaurantNotFoundError(restaurant_id) from e


def update_restaurant_image(
    db,
    storage,
    restaurant_id: str,
    filename: str,
    data: bytes,
    content_type: str | None = None,
) -> str:
    """
    Uploads an image for a restaurant and makes it the restaurant's photo.

    Args:
        db: A Firestore client.
        storage: A backend.storage.StorageClient.
        restaurant_id (str): The restaurant document id.
        filename (str): Original file name; only its base name is kept.
        data (bytes): The image content.
        content_type (str | None): MIME type stored with the object.

    Returns:
        str: The public URL of the uploaded image.

    Raises:
        ValidationError: If the id, file name or data is missing or too large.
        RestaurantNotFoundError: If the restaurant does not exist.
    """
    validate_restaurant_id(restaurant_id)
    if not filename or not data:
        raise ValidationError("A valid image has not been provided.")
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationError("Image exceeds max size.")

    path = image_storage_path(restaurant_id, filename)
    handle = storage.upload(path, data, content_type)
    public_image_url = storage.get_public_url(handle)
    update_restaurant_image_reference(db, restaurant_id, public_image_url)
    logger.info("Updated photo for restaurant %s: %s", restaurant_id, path)
    return public_image_url
