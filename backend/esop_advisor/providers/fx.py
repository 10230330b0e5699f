"""USD/INR conversion rate lookup with a configured fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FxRate:
    base_currency: str
    quote_currency: str
    rate: Decimal
    timestamp: datetime
    source: str


class FxProvider(Protocol):
    async def usd_inr(self) -> FxRate:
        ...


class StaticFxProvider:
    """Always answers with a fixed rate."""

    def __init__(self, rate: Decimal, *, source: str = "static"):
        self._rate = Decimal(rate)
        self._source = source

    async def usd_inr(self) -> FxRate:
        return FxRate("USD", "INR", self._rate, datetime.now(timezone.utc), self._source)


class HttpFxProvider:
    """Query an exchangerate.host style endpoint, falling back to a static rate.

    Any failure of the remote lookup degrades to the fallback rate; the
    returned ``source`` tells the caller which one was used.
    """

    def __init__(
        self,
        url: str,
        *,
        fallback_rate: Decimal,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = url
        self._fallback = StaticFxProvider(fallback_rate, source="fallback")
        self._timeout = timeout_seconds
        self._client = client

    async def _fetch(self) -> httpx.Response:
        params = {"base": "USD", "symbols": "INR"}
        if self._client is not None:
            return await self._client.get(self._url, params=params, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(self._url, params=params)

    async def usd_inr(self) -> FxRate:
        try:
            response = await self._fetch()
            response.raise_for_status()
            payload = response.json()
            rate = Decimal(str(payload["rates"]["INR"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError, InvalidOperation) as exc:
            logger.warning("USD/INR lookup failed, using fallback rate: %s", exc)
            return await self._fallback.usd_inr()
        if not rate.is_finite() or rate <= 0:
            logger.warning("USD/INR lookup returned invalid rate %s, using fallback rate", rate)
            return await self._fallback.usd_inr()
        return FxRate("USD", "INR", rate, datetime.now(timezone.utc), "live")


__all__ = ["FxRate", "FxProvider", "StaticFxProvider", "HttpFxProvider"]
