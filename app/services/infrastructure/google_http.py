"""
Shared async HTTP plumbing for Google APIs.
Handles client creation, retry with backoff, and response/error mapping so the
Gmail, Calendar, People and Places clients only build requests and parse payloads.
"""

import asyncio
import time

import httpx

from app.config import settings
from app.core.errors import ProviderError, TransientError
from app.infrastructure.observability.logging import get_logger, log_provider_call

logger = get_logger(__name__)

MAX_RETRIES = 3
BACKOFF_FACTOR = 0.5
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


def create_http_client() -> httpx.AsyncClient:
    """Pooled client shared by the Google API services of one request."""
    timeout = httpx.Timeout(settings.GOOGLE_REQUEST_TIMEOUT)
    limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
    return httpx.AsyncClient(timeout=timeout, limits=limits)


class GoogleApiError(ProviderError):
    """Google API answered with an error status or an unreadable body."""

    def __init__(
        self,
        message: str,
        provider: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message, provider=provider, status_code=status_code)
        self.api_error_code = error_code
        self.response_data = response_data or {}


class GoogleRateLimitError(TransientError):
    """Google kept answering 429 after retries."""

    error_code = "rate_limited"


class GoogleApiClient:
    """
    Base class for Google API clients.

    Subclasses set `provider` (used in logs and errors) and `error_messages`
    (status code -> user-friendly message).
    """

    provider = "google"
    error_messages: dict[str, str] = {}

    def __init__(self, access_token: str | None = None, client: httpx.AsyncClient | None = None):
        self.access_token = access_token
        self._client = client or self._create_client()

    def _create_client(self) -> httpx.AsyncClient:
        return create_http_client()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _get_auth_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        f"{self.provider} API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise GoogleApiError(
                        f"{self.provider} API unreachable: {e}", provider=self.provider
                    ) from e
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    f"{self.provider} API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError(f"{self.provider} API retry loop exhausted")

    async def _call(self, method: str, url: str, operation: str, **kwargs) -> dict:
        """Send a request and return the decoded JSON body, logging the outcome."""
        started = time.monotonic()
        try:
            response = await self._request_with_retry(
                method, url, headers=self._get_auth_headers(), **kwargs
            )
            data = self._handle_api_response(response, operation)
        except (GoogleApiError, GoogleRateLimitError) as e:
            log_provider_call(
                self.provider,
                operation,
                ok=False,
                latency_ms=round((time.monotonic() - started) * 1000, 1),
                error=str(e),
            )
            raise

        log_provider_call(
            self.provider,
            operation,
            ok=True,
            latency_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return data

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Handle and validate an API response.

        Args:
            response: HTTP response
            operation: Operation name for logging

        Returns:
            dict: Parsed response data

        Raises:
            GoogleApiError: If the response is an error or cannot be decoded
            GoogleRateLimitError: If the API is still rate limiting after retries
        """
        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse {self.provider} {operation} response", error=str(e))
                raise GoogleApiError(
                    f"Invalid response format: {e}", provider=self.provider
                ) from e

        if response.status_code == 429:
            raise GoogleRateLimitError(
                f"{self.provider} rate limit reached", details={"operation": operation}
            )

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            logger.error(
                f"{self.provider} {operation} failed with non-JSON response",
                status_code=response.status_code,
                response_text=response.text[:200] if response.text else "",
            )
            raise GoogleApiError(
                f"{self.provider} API error (HTTP {response.status_code})",
                provider=self.provider,
                status_code=response.status_code,
            ) from None

        error_info = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        if not isinstance(error_info, dict):
            error_info = {"message": str(error_info)}
        error_code = str(error_info.get("code", response.status_code))
        error_message = error_info.get("message", f"Unknown {self.provider} API error")

        logger.error(
            f"{self.provider} {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )

        raise GoogleApiError(
            self.error_messages.get(error_code, f"{self.provider} error: {error_message}"),
            provider=self.provider,
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data,
        )
