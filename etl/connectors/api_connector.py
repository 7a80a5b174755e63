"""
REST API connector with authentication and retry logic.

This module provides API reads and writes with:
- none / basic / bearer / api-key authentication
- Exponential backoff retry logic for transient failures
- Rate limiting protection (HTTP 429 with Retry-After)
- Comprehensive error handling with custom exceptions
"""

import httpx
import asyncio
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Dict, Any, Optional
from etl.connectors.base import BaseConnector
from schemas.data_source import APIConfig
from core.config import settings
from core.exceptions import (
    APIExtractionError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
    LoadError
)
import logging

logger = logging.getLogger(__name__)


def parse_retry_after(value: Optional[str], fallback: float) -> float:
    """
    Seconds to wait from a Retry-After header.

    Accepts delay-seconds ("120", "1.5") or an HTTP-date. Missing or
    unparseable values use the fallback; dates in the past mean no wait.
    """
    if value is None:
        return fallback

    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        return max(0.0, seconds) if math.isfinite(seconds) else fallback

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable Retry-After header: {value!r}")
        return fallback

    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


class APIConnector(BaseConnector):
    """
    Read from and write to a REST endpoint.

    Attributes:
        max_retries: Maximum number of attempts per request (default: settings.MAX_RETRIES)
        retry_delay: Initial retry delay in seconds (default: settings.RETRY_DELAY_SECONDS)
        timeout: Request timeout in seconds (config.timeout or settings.HTTP_TIMEOUT_SECONDS)
    """

    def __init__(
        self,
        source_id: str,
        source_name: str,
        config: APIConfig,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(source_id, source_name)
        self.config = config
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY_SECONDS
        self.timeout = config.timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        headers.update(self.config.headers)

        if self.config.auth_type == "bearer" and self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        elif self.config.auth_type == "api-key" and self.config.api_key:
            headers[self.config.api_key_header] = self.config.api_key

        return headers

    def _build_auth(self) -> Optional[httpx.BasicAuth]:
        if self.config.auth_type == "basic":
            return httpx.BasicAuth(self.config.username or "", self.config.password or "")
        return None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._build_headers(),
                auth=self._build_auth(),
                timeout=self.timeout,
                transport=self._transport
            )
        self.connected = True
        logger.debug(f"API connector ready for {self.config.url}")

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.connected = False

    async def test(self) -> str:
        await self.connect()
        try:
            response = await self._request_with_retry("GET", self.config.url, params=self.config.params)
            return f"Connected to {self.config.url} (HTTP {response.status_code})"
        finally:
            await self.disconnect()

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic and exponential backoff.

        Raises:
            AuthenticationError: HTTP 401/403 (not retried)
            ResourceNotFoundError: HTTP 404 (not retried)
            RateLimitError: HTTP 429 after max retries
            NetworkError: Timeouts, transport errors or 5xx after max retries
            APIExtractionError: Any other non-success status
        """
        await self.ensure_connected()
        last_exception = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"{method} attempt {attempt + 1}/{self.max_retries} to {url}")
                response = await self._client.request(method, url, params=params, json=json)

                if response.status_code in (401, 403):
                    raise AuthenticationError(
                        f"Authentication failed for {url}",
                        context={
                            "status_code": response.status_code,
                            "api_url": url,
                            "source_id": self.source_id
                        }
                    )

                if response.status_code == 404:
                    raise ResourceNotFoundError(
                        f"Resource not found: {url}",
                        context={"status_code": 404, "api_url": url, "source_id": self.source_id}
                    )

                if response.status_code == 429:
                    retry_after = parse_retry_after(
                        response.headers.get("Retry-After"), self.retry_delay * (2 ** attempt)
                    )
                    if attempt < self.max_retries - 1:
                        logger.warning(f"Rate limited. Retrying after {retry_after} seconds")
                        await asyncio.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        f"Rate limit exceeded for {url}",
                        context={
                            "status_code": 429,
                            "api_url": url,
                            "source_id": self.source_id,
                            "retry_count": attempt + 1
                        },
                        retry_after=retry_after
                    )

                if response.status_code >= 500:
                    if attempt < self.max_retries - 1:
                        delay = self.retry_delay * (2 ** attempt)
                        logger.warning(
                            f"Server error {response.status_code}. "
                            f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise NetworkError(
                        f"Server error after {self.max_retries} attempts",
                        context={
                            "status_code": response.status_code,
                            "api_url": url,
                            "source_id": self.source_id,
                            "retry_count": attempt + 1,
                            "response_body": response.text[:500]
                        }
                    )

                if response.status_code >= 400:
                    raise APIExtractionError(
                        f"Request to {url} failed with HTTP {response.status_code}",
                        context={
                            "status_code": response.status_code,
                            "api_url": url,
                            "response_body": response.text[:500]
                        }
                    )

                return response

            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(f"{type(e).__name__} calling {url}. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Request to {url} failed after {self.max_retries} attempts",
                    context={
                        "api_url": url,
                        "source_id": self.source_id,
                        "timeout": self.timeout,
                        "retry_count": attempt + 1
                    },
                    original_exception=e
                )

        raise NetworkError(
            "Max retries exceeded",
            context={"api_url": url, "source_id": self.source_id},
            original_exception=last_exception
        )

    def _extract_records(self, payload: Any) -> List[Dict[str, Any]]:
        """Pull the record list out of the response body"""
        if self.config.records_path:
            node = payload
            for key in self.config.records_path.split("."):
                if not isinstance(node, dict) or key not in node:
                    raise APIExtractionError(
                        f"records_path '{self.config.records_path}' not found in response",
                        context={"api_url": self.config.url, "source_id": self.source_id}
                    )
                node = node[key]
            payload = node

        if isinstance(payload, list):
            records = payload
        elif isinstance(payload, dict):
            records = payload.get("data", payload.get("results", [payload]))
        else:
            records = []

        return [r if isinstance(r, dict) else {"value": r} for r in records]

    async def read(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        params = dict(self.config.params)
        if query:
            params.update(query)

        response = await self._request_with_retry(self.config.method, self.config.url, params=params)

        try:
            payload = response.json()
        except ValueError as e:
            raise APIExtractionError(
                "Failed to parse JSON response",
                context={
                    "api_url": self.config.url,
                    "source_id": self.source_id,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )

        records = self._extract_records(payload)
        logger.info(f"Fetched {len(records)} records from {self.source_name}")
        return records

    async def write(self, records: List[Dict[str, Any]]) -> int:
        written = 0
        for record in records:
            try:
                await self._request_with_retry(self.config.write_method, self.config.url, json=record)
            except APIExtractionError as e:
                raise LoadError(
                    f"Failed to write record {written + 1} to {self.config.url}",
                    context={"source_id": self.source_id, "records_to_load": len(records)},
                    original_exception=e
                )
            written += 1

        logger.info(f"Posted {written} records to {self.source_name}")
        return written
