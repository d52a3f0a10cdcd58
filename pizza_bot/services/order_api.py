"""
HTTP client for the remote ordering API.

Endpoints:
----------
- GET  {base}/store-locator?s=<street>&c=<city, region>&type=Delivery
- POST {base}/validate-order   body: {"Order": request}
- POST {base}/price-order      body: {"Order": request}
- POST {base}/place-order      body: {"Order": request}
- GET  {tracker}/orders?phonenumber=<digits>

Each call is an independent round trip. A non-success Status in the
envelope is not an exception here: the caller decides how to map it. HTTP
errors, timeouts and bodies that are not the documented shape raise, and
the order manager converts those into SYSTEM_ERROR results.

Usage:
------
    client = OrderApiClient()
    stores = await client.find_stores("12 A St", "Springfield", "IL")
    priced = await client.price_order(request)
    if priced.is_success:
        total = priced.customer_amount()
"""

import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from ..config import (
    ORDER_API_BASE_URL,
    ORDER_API_HEADERS,
    REMOTE_TIMEOUT_SECONDS,
    TRACKER_BASE_URL,
    TRACKER_HEADERS,
)
from ..schemas.remote import RemoteResponse, RemoteStore, TrackingStatus

logger = logging.getLogger(__name__)


class OrderApiError(RuntimeError):
    """Raised for transport failures and malformed API responses."""


class OrderService(Protocol):
    """Remote operations the order manager depends on."""

    async def find_stores(self, street: str, city: str, region: str) -> List[RemoteStore]:
        ...

    async def validate_order(self, request: Dict[str, Any]) -> RemoteResponse:
        ...

    async def price_order(self, request: Dict[str, Any]) -> RemoteResponse:
        ...

    async def place_order(self, request: Dict[str, Any]) -> RemoteResponse:
        ...

    async def track_order(self, phone: str) -> Optional[TrackingStatus]:
        ...


class OrderApiClient:
    """aiohttp implementation of OrderService."""

    def __init__(
        self,
        base_url: str = ORDER_API_BASE_URL,
        tracker_url: str = TRACKER_BASE_URL,
        timeout_seconds: float = REMOTE_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            base_url: Ordering API root
            tracker_url: Tracking API root
            timeout_seconds: Total timeout per request
            session: Optional shared session; the caller owns its lifetime.
                     Without one, each request opens a short-lived session.
        """
        self.base_url = base_url.rstrip("/")
        self.tracker_url = tracker_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session

    async def _request_json(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        logger.debug("%s %s", method, url)

        async def send(session: aiohttp.ClientSession) -> Any:
            async with session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise OrderApiError(
                        f"{method} {url} returned HTTP {response.status}: {error_text[:200]}"
                    )
                return await response.json(content_type=None)

        if self._session is not None:
            return await send(self._session)

        async with aiohttp.ClientSession() as session:
            return await send(session)

    async def _post_order(self, endpoint: str, request: Dict[str, Any]) -> RemoteResponse:
        data = await self._request_json(
            "POST",
            f"{self.base_url}/{endpoint}",
            headers=ORDER_API_HEADERS,
            payload={"Order": request},
        )
        if not isinstance(data, dict):
            raise OrderApiError(f"{endpoint} returned {type(data).__name__}, expected an object")
        return RemoteResponse.model_validate(data)

    # =========================================================================
    # Operations
    # =========================================================================

    async def find_stores(self, street: str, city: str, region: str) -> List[RemoteStore]:
        data = await self._request_json(
            "GET",
            f"{self.base_url}/store-locator",
            headers=ORDER_API_HEADERS,
            params={"s": street, "c": f"{city}, {region}", "type": "Delivery"},
        )
        stores = data.get("Stores") if isinstance(data, dict) else None
        if not stores:
            logger.info("Store locator returned no stores for %s, %s", city, region)
            return []
        return [RemoteStore.model_validate(store) for store in stores]

    async def validate_order(self, request: Dict[str, Any]) -> RemoteResponse:
        return await self._post_order("validate-order", request)

    async def price_order(self, request: Dict[str, Any]) -> RemoteResponse:
        return await self._post_order("price-order", request)

    async def place_order(self, request: Dict[str, Any]) -> RemoteResponse:
        return await self._post_order("place-order", request)

    async def track_order(self, phone: str) -> Optional[TrackingStatus]:
        digits = re.sub(r"\D", "", phone)
        data = await self._request_json(
            "GET",
            f"{self.tracker_url}/orders",
            headers=TRACKER_HEADERS,
            params={"phonenumber": digits},
        )
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            return None
        return TrackingStatus.model_validate(data)
