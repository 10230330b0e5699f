"""Live quote collaborators and the concurrent price fan-out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Protocol

import httpx

from esop_advisor.core.errors import PriceResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    ticker: str
    price: Decimal
    timestamp: datetime


class QuoteProvider(Protocol):
    """Pluggable quote source: one call per ticker."""

    async def get_quote(self, ticker: str) -> Quote:
        ...


class InMemoryQuoteProvider:
    """Quote provider backed by a static mapping, for tests and offline runs."""

    def __init__(self, prices: Mapping[str, Decimal | str | float] | None = None):
        self._prices = {ticker.upper(): Decimal(str(price)) for ticker, price in (prices or {}).items()}
        self.calls: list[str] = []

    async def get_quote(self, ticker: str) -> Quote:
        self.calls.append(ticker)
        price = self._prices.get(ticker.upper())
        if price is None:
            raise PriceResolutionError(ticker, "no quote available")
        return Quote(ticker=ticker, price=price, timestamp=datetime.now(timezone.utc))


class HttpQuoteProvider:
    """Fetch quotes from an HTTP quote service.

    The service answers ``GET {base_url}/quotes/{ticker}`` with a JSON object
    holding ``price`` and an optional ISO ``timestamp``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._client = client

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, headers=headers)

    async def get_quote(self, ticker: str) -> Quote:
        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        url = f"{self._base_url}/quotes/{ticker}"
        try:
            response = await self._get(url, headers)
        except httpx.HTTPError as exc:
            raise PriceResolutionError(ticker, f"quote service unreachable: {exc}") from exc
        if response.status_code >= 400:
            raise PriceResolutionError(ticker, f"quote service error {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise PriceResolutionError(ticker, "quote service returned invalid JSON") from exc
        return _parse_quote(ticker, payload)


def _parse_quote(ticker: str, payload: Any) -> Quote:
    if not isinstance(payload, dict):
        raise PriceResolutionError(ticker, "quote payload is not an object")
    raw_price = payload.get("price", payload.get("regularMarketPrice"))
    try:
        price = Decimal(str(raw_price))
    except InvalidOperation as exc:
        raise PriceResolutionError(ticker, f"invalid price {raw_price!r}") from exc
    if not price.is_finite() or price <= 0:
        raise PriceResolutionError(ticker, f"invalid price {raw_price!r}")
    raw_timestamp = payload.get("timestamp")
    timestamp = datetime.now(timezone.utc)
    if isinstance(raw_timestamp, str):
        try:
            timestamp = datetime.fromisoformat(raw_timestamp.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Ignoring unparseable quote timestamp %r for %s", raw_timestamp, ticker)
    return Quote(ticker=ticker, price=price, timestamp=timestamp)


async def resolve_quotes(
    provider: QuoteProvider,
    tickers: Iterable[str],
    *,
    timeout_seconds: float,
) -> dict[str, Quote | PriceResolutionError]:
    """Look up every distinct ticker concurrently and wait for all of them.

    Failures are returned per ticker instead of raised; tickers still pending
    when the timeout expires are reported as lookup failures.
    """

    distinct = list(dict.fromkeys(tickers))
    if not distinct:
        return {}
    tasks = {ticker: asyncio.ensure_future(provider.get_quote(ticker)) for ticker in distinct}
    done, pending = await asyncio.wait(tasks.values(), timeout=timeout_seconds)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    results: dict[str, Quote | PriceResolutionError] = {}
    for ticker, task in tasks.items():
        if task in pending:
            results[ticker] = PriceResolutionError(ticker, f"lookup timed out after {timeout_seconds}s")
            continue
        exc = task.exception()
        if exc is None:
            results[ticker] = task.result()
        elif isinstance(exc, PriceResolutionError):
            results[ticker] = exc
        else:
            logger.warning("Quote lookup for %s failed: %s", ticker, exc)
            results[ticker] = PriceResolutionError(ticker, str(exc))
    failures = [t for t, r in results.items() if isinstance(r, PriceResolutionError)]
    if failures:
        logger.info("Unresolved quotes for %s", ", ".join(failures))
    return results


__all__ = [
    "Quote",
    "QuoteProvider",
    "InMemoryQuoteProvider",
    "HttpQuoteProvider",
    "resolve_quotes",
]
