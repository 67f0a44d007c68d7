"""
RESO Web API listing extractor with authentication and retry logic.

This module provides paged, incrementally filtered extraction with:
- OData query building ($top, $skip, $orderby, $filter, $select)
- Exponential backoff retry for 5xx, timeouts and network errors
- Typed failures folded into BatchResult (nothing raised to the runner)
"""

import httpx
import asyncio
from typing import List, Dict, Any, Optional
from datetime import datetime
from ingestion.base import BatchResult, ListingSource
from core.exceptions import (
    ExtractionError,
    TransportError,
    AuthenticationError,
    MalformedEnvelopeError
)
import logging

logger = logging.getLogger(__name__)

NEXT_LINK_KEYS = ("@odata.nextLink", "nextPageLink")


def format_watermark(watermark: datetime) -> str:
    """Naive-UTC datetime -> OData DateTimeOffset literal (millisecond precision)"""
    return watermark.strftime("%Y-%m-%dT%H:%M:%S.") + f"{watermark.microsecond // 1000:03d}Z"


class RESOExtractor(ListingSource):
    """
    Extract Property resources from a RESO Web API endpoint.

    Features:
    - Bearer token authentication
    - Offset paging with a stable order by natural key
    - Incremental loading via ModificationTimestamp
    - Retry logic with exponential backoff

    Attributes:
        max_retries: Attempts per page request (default: 3)
        retry_delay: Initial retry delay in seconds (default: 1.0)
        timeout: Request timeout in seconds (default: 30.0)
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        resource: str = "Property",
        order_by: str = "ListingId",
        modification_field: str = "ModificationTimestamp",
        base_filter: Optional[str] = None,
        select_fields: Optional[List[str]] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.resource = resource
        self.order_by = order_by
        self.modification_field = modification_field
        self.base_filter = base_filter
        self.select_fields = select_fields
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, app_settings) -> "RESOExtractor":
        return cls(
            api_url=app_settings.MLS_API_URL,
            api_key=app_settings.MLS_API_KEY,
            max_retries=app_settings.MAX_RETRIES,
            retry_delay=app_settings.RETRY_DELAY_SECONDS,
            timeout=app_settings.REQUEST_TIMEOUT_SECONDS
        )

    @property
    def resource_url(self) -> str:
        return f"{self.api_url}/{self.resource}"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_params(
        self,
        limit: int,
        offset: int,
        watermark: Optional[datetime] = None,
        extra_filter: Optional[str] = None
    ) -> Dict[str, str]:
        """OData query for one page; the order clause keeps offset paging deterministic"""
        params = {
            "$top": str(limit),
            "$skip": str(offset),
            "$orderby": self.order_by,
        }
        if self.select_fields:
            params["$select"] = ",".join(self.select_fields)

        clauses = [c for c in (self.base_filter, extra_filter) if c]
        if watermark is not None:
            clauses.append(f"{self.modification_field} gt {format_watermark(watermark)}")
        if clauses:
            params["$filter"] = " and ".join(clauses)
        return params

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _make_request_with_retry(
        self,
        client: httpx.AsyncClient,
        params: Dict[str, str]
    ) -> httpx.Response:
        """
        GET the resource with retry logic and exponential backoff.

        Raises:
            AuthenticationError: 401/403, not retried
            TransportError: 4xx, or retryable failures after max retries
        """
        url = self.resource_url

        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            delay = self.retry_delay * (2 ** attempt)

            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
                response = await client.get(url, headers=self._headers(), params=params)
            except httpx.TimeoutException as e:
                if last_attempt:
                    raise TransportError(
                        f"Request timeout after {self.max_retries} attempts",
                        context={"api_url": url, "timeout": self.timeout, "retry_count": attempt + 1},
                        original_exception=e
                    )
                logger.warning(f"Request timeout. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue
            except httpx.TransportError as e:
                if last_attempt:
                    raise TransportError(
                        f"Network error after {self.max_retries} attempts",
                        context={"api_url": url, "retry_count": attempt + 1},
                        original_exception=e
                    )
                logger.warning(f"Network error ({type(e).__name__}). Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue

            if response.status_code in (401, 403):
                raise AuthenticationError(
                    f"Authentication failed for {url}",
                    context={"status_code": response.status_code, "api_url": url}
                )

            if response.status_code == 429 or response.status_code >= 500:
                if last_attempt:
                    raise TransportError(
                        f"Listing service error after {self.max_retries} attempts",
                        context={
                            "status_code": response.status_code,
                            "api_url": url,
                            "retry_count": attempt + 1,
                            "response_body": response.text[:500]
                        }
                    )
                retry_after = response.headers.get("Retry-After")
                if response.status_code == 429 and retry_after and retry_after.isdigit():
                    delay = int(retry_after)
                logger.warning(
                    f"Listing service returned {response.status_code}. "
                    f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise TransportError(
                    f"Listing service rejected request ({response.status_code})",
                    context={
                        "status_code": response.status_code,
                        "api_url": url,
                        "response_body": response.text[:500]
                    }
                )

            return response

        # max_retries >= 1, every path above returns or raises
        raise TransportError("Max retries exceeded", context={"api_url": url})

    def _parse_envelope(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedEnvelopeError(
                "Failed to parse JSON response",
                context={"api_url": self.resource_url, "response_body": response.text[:500]},
                original_exception=e
            )

        if not isinstance(data, dict) or not isinstance(data.get("value"), list):
            raise MalformedEnvelopeError(
                "Response is missing the 'value' array",
                context={"api_url": self.resource_url, "response_body": response.text[:500]}
            )
        return data

    async def _query(self, params: Dict[str, str]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await self._make_request_with_retry(client, params)
        return self._parse_envelope(response)

    async def fetch_batch(
        self,
        limit: int,
        offset: int,
        watermark: Optional[datetime] = None
    ) -> BatchResult:
        """
        Fetch one page of listings.

        Returns BatchResult(success=False, count=0) on transport failure or
        a malformed envelope; never raises for those.
        """
        params = self.build_params(limit, offset, watermark)
        logger.info(f"Fetching listings from {self.resource_url} (offset={offset}, limit={limit})")

        try:
            data = await self._query(params)
        except ExtractionError as e:
            logger.error(
                f"Listing fetch failed at offset {offset}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return BatchResult.failed(str(e))

        records = [r for r in data["value"] if isinstance(r, dict)]
        next_cursor = next((data[k] for k in NEXT_LINK_KEYS if data.get(k)), None)

        logger.debug(f"Fetched {len(records)} listings (next page: {next_cursor is not None})")
        return BatchResult(
            success=True,
            count=len(records),
            records=records,
            next_cursor=next_cursor
        )

    async def fetch_by_mls_number(self, mls_number: str) -> Optional[Dict[str, Any]]:
        """Look up a single listing by ListingId; None when absent or on failure"""
        escaped = mls_number.replace("'", "''")
        params = self.build_params(1, 0, extra_filter=f"ListingId eq '{escaped}'")

        try:
            data = await self._query(params)
        except ExtractionError as e:
            logger.error(f"Error fetching listing {mls_number}: {e.message}")
            return None

        record = data["value"][0] if data["value"] else None
        return record if isinstance(record, dict) else None
