"""HTTP client for the local inference server's model listing."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from model_conductor import constants
from model_conductor.models.catalog import Catalog, ModelListResponse

LOG = logging.getLogger(__name__)


class InferenceClient:
    """Reachability probe and catalog fetch against ``{base_url}/v1/models``.

    Neither operation raises on network trouble; callers get a boolean or an
    empty catalog and decide what to do with it.
    """

    def __init__(self, base_url: str, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def models_url(self) -> str:
        return f"{self.base_url}{constants.MODELS_PATH}"

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(timeout=timeout, transport=self._transport)

    def probe(
        self,
        attempts: int = 3,
        timeout: float = 1.0,
        delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Return True as soon as one HEAD request succeeds."""
        for attempt in range(1, attempts + 1):
            try:
                with self._client(timeout) as client:
                    response = client.head(self.models_url)
                if response.is_success:
                    return True
                LOG.debug("Probe %d/%d: HTTP %s", attempt, attempts, response.status_code)
            except httpx.HTTPError as exc:
                LOG.debug("Probe %d/%d failed: %s", attempt, attempts, exc)
            if attempt < attempts:
                sleep(delay)
        LOG.info("Inference server at %s unreachable after %d attempts", self.base_url, attempts)
        return False

    def fetch_catalog(self, timeout: float = 10.0) -> Catalog:
        """Return the loaded models, or an empty list on any failure."""
        try:
            with self._client(timeout) as client:
                response = client.get(self.models_url)
        except httpx.HTTPError as exc:
            LOG.warning("Error fetching models from %s: %s", self.models_url, exc)
            return []

        if not response.is_success:
            LOG.warning("Error fetching models: HTTP %s", response.status_code)
            return []

        try:
            listing = ModelListResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            LOG.warning("Malformed model listing from %s: %s", self.models_url, exc)
            return []
        return list(listing.data)
