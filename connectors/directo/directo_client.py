"""Directo HTTP Client.

Low-level HTTP client for the Directo XML API (`xmlcore.asp`).
Handles the API key, query building, read retries, and maps HTTP failures
onto TransportError. Response bodies are returned as text; turning them into
models is the job of directo_models.
"""

from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field
import asyncio

import aiohttp

from connectors.erp_base import TransportError
from core.observability import get_logger, record_erp_call

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Retry behavior for read requests. Writes are never retried."""
    max_retries: int = 2
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    retry_on_status: Tuple[int, ...] = (429, 500, 502, 503, 504)

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for retry attempt (exponential backoff)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class DirectoApiConfig:
    """Configuration for the Directo API client."""
    organization: str
    api_key: str
    base_url: str = "https://login.directo.ee/xmlcore"
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    timeout_seconds: int = 30

    def __post_init__(self):
        if not self.organization:
            raise ValueError("Organization not specified")
        if not self.api_key:
            raise ValueError("API Key not specified")

    @property
    def endpoint_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.organization}/xmlcore.asp"


class DirectoApiClient:
    """HTTP client for the Directo API.

    Usage:
        client = DirectoApiClient(api_config)
        await client.connect()
        body = await client.get("delivery", number="1001")
        body = await client.put("delivery", xmldata)
    """

    def __init__(self, api_config: DirectoApiConfig):
        self.api_config = api_config
        self._session: Optional[aiohttp.ClientSession] = None
        logger.debug(
            f"Initializing Directo client with organization '{api_config.organization}' "
            f"and key '{api_config.api_key[:4]}...'"
        )

    async def connect(self) -> bool:
        """Open the HTTP session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.api_config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return True

    async def disconnect(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get(self, what: str, **filters: Optional[str]) -> str:
        """Read records of one type (`item`, `delivery`, `movement`).

        Filters with a None value are left out of the query.

        Raises:
            TransportError: Non-2xx response or connectivity failure after retries
        """
        params: Dict[str, str] = {
            "key": self.api_config.api_key,
            "get": "1",
            "what": what,
        }
        params.update({k: str(v) for k, v in filters.items() if v is not None})

        retry_config = self.api_config.retry_config
        last_error: Optional[Exception] = None

        for attempt in range(retry_config.max_retries + 1):
            try:
                status, body = await self._request("GET", params=params)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e
                if attempt < retry_config.max_retries:
                    delay = retry_config.get_delay(attempt)
                    logger.warning(
                        f"Request failed with {type(e).__name__}: {e}, "
                        f"retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                record_erp_call(f"get.{what}", error="transport")
                raise TransportError(f"Request failed after {retry_config.max_retries} retries: {e}") from e

            if status < 400:
                record_erp_call(f"get.{what}")
                return body

            if status in retry_config.retry_on_status and attempt < retry_config.max_retries:
                delay = retry_config.get_delay(attempt)
                logger.warning(
                    f"Request failed with {status}, "
                    f"retrying in {delay:.1f}s (attempt {attempt + 1}/{retry_config.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            logger.debug(f"Received unexpected response: {status} {body[:500]}")
            record_erp_call(f"get.{what}", error=str(status))
            raise TransportError(f"Unexpected response code: {status}", status, body)

        raise TransportError(f"Request failed: {last_error}")

    async def put(self, what: str, xmldata: str) -> str:
        """Submit an XML document for one record type.

        Returns the response body; the caller inspects the per-record result.

        Raises:
            TransportError: Non-2xx response or connectivity failure
        """
        data = {
            "xmldata": xmldata,
            "put": "1",
            "what": what,
        }
        try:
            status, body = await self._request("POST", data=data)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            record_erp_call(f"put.{what}", error="transport")
            raise TransportError(f"Update request failed: {e}") from e

        if status >= 400:
            logger.error(f"Update rejected with HTTP {status}: {body[:500]}")
            record_erp_call(f"put.{what}", error=str(status))
            raise TransportError(f"Unable to update {what}: HTTP {status}", status, body)

        record_erp_call(f"put.{what}")
        return body

    async def _request(
        self,
        method: str,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, str]:
        if not self._session:
            await self.connect()

        async with self._session.request(
            method,
            self.api_config.endpoint_url,
            params=params,
            data=data,
        ) as response:
            return response.status, await response.text()
