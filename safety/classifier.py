"""Client for the external content classifier.

The classifier receives an item's title, description and whether the
structural marker was found, and answers with a verdict and a human-readable
report::

    POST <classifier_url>
    {"title": "...", "description": "...", "structuralMarkerPresent": true}

    200 {"verdict": "clean" | "infected", "report": "..."}

Any failure (transport, HTTP status, malformed body) surfaces as
ClassifierUnavailable so the pipeline can apply its fallback policy.
"""
import asyncio
import logging
from typing import Literal, Optional

import requests
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

class ClassifierUnavailable(Exception):
    """Raised when the classifier cannot produce a verdict."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(f"Classifier error [{status_code}]: {message}" if status_code else message)

class ClassifierVerdict(BaseModel):
    """Parsed classifier answer."""
    verdict: Literal['clean', 'infected']
    report: str

class HttpClassifier:
    """JSON-over-HTTP classifier client."""

    def __init__(self, url: str, api_key: Optional[str] = None, timeout: float = 30.0):
        """Initialize the client.

        Args:
            url: Classifier endpoint; empty disables classification
            api_key: Optional bearer token
            timeout: Socket timeout for each request, in seconds
        """
        self.url = url
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers['content-type'] = 'application/json'
        if api_key:
            self.session.headers['authorization'] = f"Bearer {api_key}"

    def _post(self, payload: dict) -> ClassifierVerdict:
        """Make the blocking classifier call.

        Raises:
            ClassifierUnavailable: On any transport, status or format error
        """
        if not self.url:
            raise ClassifierUnavailable("Classifier endpoint not configured")

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise ClassifierUnavailable("Classifier request timed out")
        except requests.exceptions.RequestException as e:
            raise ClassifierUnavailable(f"Failed to reach classifier: {str(e)}")

        if response.status_code != 200:
            raise ClassifierUnavailable(response.text[:200] or "empty response", response.status_code)

        try:
            return ClassifierVerdict(**response.json())
        except (ValueError, TypeError, ValidationError) as e:
            raise ClassifierUnavailable(f"Malformed classifier response: {str(e)}")

    async def classify(
        self,
        title: str,
        description: str,
        structural_marker_present: bool
    ) -> ClassifierVerdict:
        """Classify an item without blocking the event loop."""
        payload = {
            'title': title,
            'description': description,
            'structuralMarkerPresent': structural_marker_present
        }
        return await asyncio.to_thread(self._post, payload)

    def close(self) -> None:
        self.session.close()
