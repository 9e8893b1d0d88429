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

import unittest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions
from google.genai import errors

from models import gemini


class CallPredictTest(unittest.TestCase):

    @patch("models.gemini.genai.Client")
    def test_returns_text_with_user_key(self, mock_client_class):
        mock_client = mock_client_class.return_value
        mock_client.models.generate_content.return_value = MagicMock(text="Tasty.")

        result = gemini.call_predict("Summarize", api_key="user-key")

        self.assertEqual(result, "Tasty.")
        mock_client_class.assert_called_once_with(api_key="user-key")
        kwargs = mock_client.models.generate_content.call_args.kwargs
        self.assertEqual(kwargs["model"], gemini.DEFAULT_MODEL)
        self.assertEqual(kwargs["contents"], "Summarize")

    @patch("models.gemini.api_config.DEFAULT_API_KEY", None)
    @patch("models.gemini.genai.Client")
    def test_missing_api_key(self, mock_client_class):
        with self.assertRaises(gemini.GeminiInvalidResponseException):
            gemini.call_predict("Summarize")
        mock_client_class.assert_not_called()

    @patch("models.gemini.genai.Client")
    def test_empty_response(self, mock_client_class):
        mock_client = mock_client_class.return_value
        mock_client.models.generate_content.return_value = MagicMock(text="")

        with self.assertRaises(gemini.GeminiInvalidResponseException):
            gemini.call_predict("Summarize", api_key="user-key")

    @patch("models.gemini.genai.Client")
    def test_quota_exceeded(self, mock_client_class):
        mock_client = mock_client_class.return_value
        mock_client.models.generate_content.side_effect = errors.ClientError(
            429, {"error": {"message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        )

        with self.assertRaises(exceptions.TooManyRequests):
            gemini.call_predict("Summarize", api_key="user-key")


if __name__ == "__main__":
    unittest.main()
