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

import logging
import time

from google import genai
from google.api_core import exceptions
from google.genai import errors, types

from models import api_config

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
SUMMARY_MAX_OUTPUT_TOKENS = 1000
DEFAULT_MODEL = "gemini-2.0-flash"
QUOTA_EXCEEDED_STATUS = 429


class GeminiInvalidResponseException(Exception):
    pass


def _resolve_api_key(api_key: str | None) -> str:
    if api_key:
        logger.info(API_KEY_LOGGING_MESSAGE)
        return api_key
    if not api_config.DEFAULT_API_KEY:
        raise GeminiInvalidResponseException(
            "GEMINI_API_KEY not set. Set it in the environment or .env file."
        )
    return api_config.DEFAULT_API_KEY


def call_predict(
    query: str,
    model=DEFAULT_MODEL,
    api_key: str | None = None,
    max_output_tokens: int = SUMMARY_MAX_OUTPUT_TOKENS,
) -> str:
    """
    Returns Gemini's text response to query.

    Raises:
        GeminiInvalidResponseException: If no API key is configured or the
            model returned no text.
        google.api_core.exceptions.TooManyRequests: If the quota is exhausted.
        google.genai.errors.APIError: For other model API failures.
    """
    client = genai.Client(api_key=_resolve_api_key(api_key))

    start_time = time.time()
    try:
        response = client.models.generate_content(
            model=model,
            contents=query,
            config=types.GenerateContentConfig(
                temperature=0, max_output_tokens=max_output_tokens
            ),
        )
    except errors.ClientError as e:
        if e.code == QUOTA_EXCEEDED_STATUS:
            raise exceptions.TooManyRequests(str(e)) from e
        raise
    logger.info("Gemini call took: %.2fs", time.time() - start_time)

    if not response.text:
        raise GeminiInvalidResponseException("Gemini returned an empty response.")
    return response.text
