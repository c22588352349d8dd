"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def table(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Fetch the duration (seconds) and distance (meters) matrix for ``(lat, lon)`` pairs."""
        if len(coordinates) < 1:
            raise ValueError("At least one coordinate is required for OSRM table.")

        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinate_str}"
        params = {"annotations": "duration,distance"}

        with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code", "Ok") != "Ok":
                        raise ValueError(f"OSRM table request failed: {data.get('message', data.get('code'))}")
                    if "durations" not in data or "distances" not in data:
                        raise ValueError("OSRM response missing durations/distances.")
                    return data
                except httpx.HTTPStatusError as e:
                    if e.response.status_code == 414:
                        raise ValueError(
                            f"OSRM request URL too large ({len(coordinates)} coordinates)."
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM request timed out after {self.max_retries} attempts: {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(f"Cannot reach OSRM service at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by making a simple table request.

    Public OSRM endpoints may not have a /health endpoint, so we test
    connectivity by making a minimal table request with two coordinates.
    """
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "-122.4194,37.7749;-122.4094,37.7849"
        url = f"{base.rstrip('/')}/table/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return "durations" in data and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError):
        return False
