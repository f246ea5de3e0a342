from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)


class APIClientError(RuntimeError):
    """Base error for API client failures."""


class APIClientTimeout(APIClientError):
    """Raised when request times out."""


class APIClientHTTPError(APIClientError):
    """Raised for non-success HTTP responses."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class BaseAPIClient:
    """
    Reusable base HTTP client for external APIs.

    Features:
    - Persistent session
    - Default headers
    - Bounded retry with exponential backoff (server errors only)
    - Configurable timeout
    - Safe JSON parsing
    """

    DEFAULT_TIMEOUT = 15  # seconds
    DEFAULT_RETRIES = 3
    DEFAULT_BACKOFF_FACTOR = 0.5

    # 4xx responses are final; only server-side failures are retried.
    RETRY_STATUSES = (500, 502, 503, 504)

    def __init__(
        self,
        base_url: str,
        default_headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        backoff_factor: Optional[float] = None,
    ) -> None:

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.retries = retries if retries is not None else self.DEFAULT_RETRIES

        self.session = requests.Session()

        # Default headers
        headers = {
            "User-Agent": "zoom-pipeline/1.0",
            "Accept": "application/json",
        }

        if default_headers:
            headers.update(default_headers)

        self.session.headers.update(headers)

        # Retry strategy
        retry_strategy = Retry(
            total=self.retries,
            backoff_factor=backoff_factor if backoff_factor is not None else self.DEFAULT_BACKOFF_FACTOR,
            status_forcelist=list(self.RETRY_STATUSES),
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "BaseAPIClient":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        """Context manager exit - close session."""
        self.close()

    def build_url(self, endpoint: str) -> str:
        """Join a relative endpoint to ``base_url``; absolute URLs pass through."""
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    # ---------------------------------------------------
    # Core request methods
    # ---------------------------------------------------
    def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
    ) -> requests.Response:
        url = self.build_url(endpoint)

        try:
            if method == "POST":
                response = self.session.post(
                    url,
                    params=params,
                    headers=headers,
                    auth=auth,
                    timeout=self.timeout,
                )
            else:
                response = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout,
                )
        except requests.Timeout as e:
            raise APIClientTimeout(
                f"Request timed out calling {url}"
            ) from e
        except requests.RequestException as e:
            raise APIClientError(
                f"Request failed calling {url}"
            ) from e

        if response.status_code >= 400:
            raise APIClientHTTPError(
                f"HTTP {response.status_code} returned from {url}",
                status_code=response.status_code,
                body=response.text,
            )

        return response

    def get_text(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        """Send GET request and return the raw response body."""
        return self._send("GET", endpoint, params=params, headers=headers).text

    def get_json(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send GET request and return parsed JSON.
        Raises clean, structured errors.
        """
        response = self._send("GET", endpoint, params=params, headers=headers)
        return self._parse_json(response)

    def post_json(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
    ) -> Any:
        """Send POST request and return parsed JSON."""
        response = self._send("POST", endpoint, params=params, headers=headers, auth=auth)
        return self._parse_json(response)

    @staticmethod
    def _parse_json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise APIClientError(
                f"Invalid JSON returned from {response.url}"
            ) from e
