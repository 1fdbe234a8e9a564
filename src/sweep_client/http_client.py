"""
HTTP client for the sweep client's external services.

Handles request execution, optional retry logic, and response processing for
the ledger RPC node, price APIs and metadata endpoints.
Follows pure core/impure edges principle with clean separation of concerns.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientResponse, ClientSession

from .models.config import RetryConfig

logger = logging.getLogger(__name__)


class HttpClient:
    """HTTP client shared by every service adapter."""

    def __init__(self, retry_config: Optional[RetryConfig] = None):
        """Initialize HTTP client with retry configuration."""
        self._retry_config = retry_config or RetryConfig()

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry_config

    async def request(
        self,
        session: ClientSession,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        retry: bool = True,
    ) -> Any:
        """
        Execute HTTP request and return the decoded JSON body.

        Args:
            session: aiohttp session to use
            method: HTTP method
            url: Absolute URL
            params: Query string parameters
            json_body: Body sent as JSON
            headers: Extra request headers
            retry: Set to False for requests that must never be repeated

        Returns:
            Decoded JSON response (dict, list, or a status stub for empty bodies)
        """
        request_kwargs: Dict[str, Any] = {
            "method": method,
            "url": url,
            "headers": self._prepare_headers(headers),
        }
        if params:
            request_kwargs["params"] = params
        if json_body is not None:
            request_kwargs["json"] = json_body

        max_retries = self._retry_config.max_retries if retry else 0
        return await self._execute_with_retry(session, request_kwargs, max_retries)

    def _prepare_headers(self, custom_headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Prepare request headers."""
        headers = {"Accept": "application/json"}
        if custom_headers:
            headers.update(custom_headers)
        return headers

    async def _execute_with_retry(
        self,
        session: ClientSession,
        request_kwargs: Dict[str, Any],
        max_retries: int,
    ) -> Any:
        """Execute request, retrying server and connection errors up to max_retries."""
        last_exception = None

        for attempt in range(max_retries + 1):
            try:
                async with session.request(**request_kwargs) as response:
                    response_data = await self._process_response(response)

                    if response.status < 400:
                        return response_data

                    # Don't retry on client errors (4xx)
                    if 400 <= response.status < 500:
                        if response.status == 429:
                            message = f"Rate limited by {request_kwargs['url']}"
                        else:
                            message = f"Client error {response.status}: {response_data}"
                        raise HttpClientClientError(
                            message,
                            status_code=response.status,
                            response_data=response_data,
                        )

                    # Retry on server errors
                    if response.status in self._retry_config.retry_on_status:
                        raise HttpServerError(
                            f"Server error {response.status}: {response_data}",
                            status_code=response.status,
                            response_data=response_data,
                        )

                    raise HttpClientClientError(
                        f"HTTP {response.status}: {response_data}",
                        status_code=response.status,
                        response_data=response_data,
                    )

            except (HttpServerError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e

                # Don't retry on the last attempt
                if attempt == max_retries:
                    break

                delay = self._retry_config.retry_delay * (
                    self._retry_config.backoff_factor ** attempt
                )
                logger.debug(f"Retrying {request_kwargs['url']} in {delay:.2f}s after: {e!r}")
                await asyncio.sleep(delay)

        if isinstance(last_exception, HttpClientError):
            raise last_exception
        raise HttpClientError(
            f"Request to {request_kwargs['url']} failed: {last_exception!r}"
        ) from last_exception

    async def _process_response(self, response: ClientResponse) -> Any:
        """Process HTTP response and return data."""
        response_text = await response.text()

        if not response_text:
            return {"status": response.status, "data": None}

        try:
            return json.loads(response_text)
        except json.JSONDecodeError as e:
            raise HttpClientError(
                f"Invalid JSON response (Status {response.status}): {response_text[:200]}",
                status_code=response.status,
            ) from e


class HttpClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class HttpServerError(HttpClientError):
    """Exception for server errors (5xx)."""
    pass


class HttpClientClientError(HttpClientError):
    """Exception for client errors (4xx)."""
    pass
