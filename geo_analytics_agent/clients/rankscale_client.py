from __future__ import annotations

import random
import time
from enum import Enum
from typing import Any

import requests
from requests import Response


DEFAULT_API_BASE = "https://us-central1-rankscale-2e08e.cloudfunctions.net"
USER_AGENT = "geo-analytics-agent/1.0"


class ErrorKind(str, Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    API = "api"


class RankscaleApiError(RuntimeError):
    """Failure of a Rankscale call; callers branch on `kind`."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        endpoint: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.endpoint = endpoint
        self.status_code = status_code


def extract_brand_id_from_key(api_key: str | None) -> str | None:
    """Rankscale keys embed the brand ID: ``rk_<hash>_<brandId>``."""
    if not api_key:
        return None
    parts = api_key.split("_")
    return parts[-1] if len(parts) >= 3 else None


class RankscaleClient:
    """Client for the Rankscale metrics API (Cloud Functions endpoints).

    Rate limits (429), server errors, timeouts and connection errors are
    retried with exponential backoff; 401/403 and 404 fail immediately.
    """

    AUTH_ERROR_CODES = {401, 403}
    RATE_LIMIT_CODE = 429

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE,
        timeout_sec: float = 15,
        max_retries: int = 3,
        backoff_base_sec: float = 1.0,
    ) -> None:
        self.api_key = api_key.strip()
        self.base_url = (base_url.strip() or DEFAULT_API_BASE).rstrip("/")
        self.timeout_sec = max(1.0, float(timeout_sec))
        self.max_retries = max(0, int(max_retries))
        self.backoff_base_sec = max(0.0, float(backoff_base_sec))

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _backoff_delay(self, attempt: int, *, jitter: bool = False) -> float:
        delay = self.backoff_base_sec * (2**attempt)
        if jitter:
            delay += random.uniform(0, 0.5)
        return delay

    @staticmethod
    def _parse_json(response: Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RankscaleApiError(
                ErrorKind.API,
                f"Invalid JSON response from {endpoint}: {exc}",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from exc

    def _request(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        attempt = 0
        while True:
            try:
                response = requests.request(
                    method=method.upper(),
                    url=url,
                    headers=self._headers(),
                    json=body,
                    timeout=self.timeout_sec,
                )
            except requests.Timeout as exc:
                if attempt < self.max_retries:
                    time.sleep(self._backoff_delay(attempt))
                    attempt += 1
                    continue
                raise RankscaleApiError(
                    ErrorKind.API, f"Timeout on {endpoint}", endpoint=endpoint
                ) from exc
            except requests.RequestException as exc:
                if attempt < self.max_retries:
                    time.sleep(self._backoff_delay(attempt))
                    attempt += 1
                    continue
                raise RankscaleApiError(
                    ErrorKind.API, f"Network error on {endpoint}: {exc}", endpoint=endpoint
                ) from exc

            status_code = response.status_code
            if status_code == self.RATE_LIMIT_CODE:
                if attempt < self.max_retries:
                    time.sleep(self._backoff_delay(attempt, jitter=True))
                    attempt += 1
                    continue
                raise RankscaleApiError(
                    ErrorKind.API,
                    f"Rate limited on {endpoint} (HTTP 429) after {attempt} retries",
                    endpoint=endpoint,
                    status_code=status_code,
                )

            if status_code in self.AUTH_ERROR_CODES:
                raise RankscaleApiError(
                    ErrorKind.AUTH,
                    f"Authentication failed (HTTP {status_code}). Check your RANKSCALE_API_KEY.",
                    endpoint=endpoint,
                    status_code=status_code,
                )

            if status_code == 404:
                raise RankscaleApiError(
                    ErrorKind.NOT_FOUND,
                    "Brand ID not found (HTTP 404). Run brand discovery to find valid IDs: "
                    "geo-report --discover-brands",
                    endpoint=endpoint,
                    status_code=status_code,
                )

            if status_code >= 500:
                if attempt < self.max_retries:
                    time.sleep(self._backoff_delay(attempt))
                    attempt += 1
                    continue
                raise RankscaleApiError(
                    ErrorKind.API,
                    f"Server error on {endpoint} (HTTP {status_code})",
                    endpoint=endpoint,
                    status_code=status_code,
                )

            if not response.ok:
                raise RankscaleApiError(
                    ErrorKind.API,
                    f"Request to {endpoint} failed (HTTP {status_code}): {_short_text(response)}",
                    endpoint=endpoint,
                    status_code=status_code,
                )

            return self._parse_json(response, endpoint)

    def _post_brand(self, endpoint: str, brand_id: str) -> Any:
        return self._request(endpoint, method="POST", body={"brandId": brand_id})

    def fetch_brands(self) -> Any:
        return self._request("metricsV1Brands", method="GET")

    def fetch_report(self, brand_id: str) -> Any:
        """Visibility score, rank, trends, per-engine series and competitors."""
        return self._post_brand("metricsV1Report", brand_id)

    def fetch_search_terms_report(self, brand_id: str) -> Any:
        return self._post_brand("metricsV1SearchTermsReport", brand_id)

    def fetch_search_terms(self, brand_id: str) -> Any:
        return self._post_brand("metricsV1SearchTerms", brand_id)

    def fetch_citations(self, brand_id: str) -> Any:
        """Either ``{count, rate, industryAvg, sources}`` or
        ``{total, citationRate, benchmarkRate, topSources}``."""
        return self._post_brand("metricsV1Citations", brand_id)

    def fetch_sentiment(self, brand_id: str) -> Any:
        return self._post_brand("metricsV1Sentiment", brand_id)


def _short_text(response: Response) -> str:
    text = (response.text or "").strip()
    if not text:
        return "No response body."
    if len(text) > 240:
        return text[:237] + "..."
    return text
