"""Shared base for sources served by hosted scraper actors."""

from typing import Any, Dict, List

from .base import BaseAdapter
from .exceptions import AdapterConfigurationError, AdapterResponseError


class ApifyActorAdapter(BaseAdapter):
    """Adapter base that runs a hosted actor synchronously and returns its dataset items.

    API Details:
        Endpoint: https://api.apify.com/v2/acts/{actor_id}/run-sync-get-dataset-items
        Method: POST
        Authentication: ``token`` query parameter
        Response: JSON array of dataset items
    """

    API_BASE_URL = "https://api.apify.com/v2/acts"
    REQUIRES_TOKEN = True

    def _run_actor(self, actor_id: str, actor_input: Dict[str, Any]) -> List[Any]:
        """Run ``actor_id`` with ``actor_input`` and return the raw dataset items.

        Raises:
            AdapterConfigurationError: If no API token is configured
            AdapterHTTPError: On non-success status
            AdapterTimeoutError: If the run exceeds the request timeout
            AdapterResponseError: If the response is not an array
        """
        if not self.api_token:
            raise AdapterConfigurationError(
                f"{self.SOURCE.value} requires APIFY_API_KEY to be set"
            )

        url = f"{self.API_BASE_URL}/{actor_id}/run-sync-get-dataset-items"
        data = self._make_request(
            url,
            method="POST",
            headers={"Content-Type": "application/json"},
            params={"token": self.api_token},
            json_data=actor_input,
        )

        if not isinstance(data, list):
            raise AdapterResponseError(
                f"Expected JSON array from actor {actor_id}, got {type(data).__name__}"
            )
        return data
