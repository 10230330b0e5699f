"""Detect the tax region of a batch from ticker exchange conventions."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from esop_advisor.core.errors import MixedRegionError

from .tax import TAX_RATES, TaxRegion

INDIA_SUFFIXES = (".NS", ".BO")
INDIA_PREFIXES = ("NSE:", "BSE:")
US_PREFIXES = ("NASDAQ:", "NYSE:", "AMEX:")

KNOWN_INDIAN_TICKERS = frozenset(
    {
        "INFY", "TCS", "HDFCBANK", "ICICIBANK", "RELIANCE", "SBIN", "BHARTIARTL", "ITC", "LT",
        "WIPRO", "AXISBANK", "KOTAKBANK", "HINDUNILVR", "ASIANPAINT", "MARUTI", "TITAN",
        "BAJFINANCE", "SUNPHARMA", "NESTLEIND", "ULTRACEMCO", "TECHM", "HCLTECH", "POWERGRID",
        "NTPC", "ONGC", "COALINDIA", "GRASIM", "JSWSTEEL", "TATASTEEL", "HINDALCO", "ADANIPORTS",
        "M&M", "BAJAJFINSV", "TATAMOTORS", "DIVISLAB", "DRREDDY", "CIPLA", "EICHERMOT",
        "BRITANNIA", "SHREECEM", "BPCL", "IOC", "HEROMOTOCO",
    }
)


@dataclass(frozen=True)
class RegionDetection:
    region: TaxRegion
    detections: dict[str, TaxRegion]
    counts: dict[TaxRegion, int]

    @property
    def currency(self) -> str:
        return currency_for_region(self.region)

    @property
    def is_mixed(self) -> bool:
        return len([count for count in self.counts.values() if count]) > 1


def detect_region(ticker: str) -> TaxRegion:
    normalized = ticker.strip().upper()
    if not normalized:
        raise ValueError("Ticker must not be empty")
    if normalized.endswith(INDIA_SUFFIXES) or normalized.startswith(INDIA_PREFIXES):
        return TaxRegion.INDIA
    if normalized.startswith(US_PREFIXES):
        return TaxRegion.USA
    base = normalized.split(":")[-1].split(".")[0]
    if base in KNOWN_INDIAN_TICKERS:
        return TaxRegion.INDIA
    # Unsuffixed and unknown tickers are listed in the US
    return TaxRegion.USA


def currency_for_region(region: TaxRegion) -> str:
    return TAX_RATES[region].currency


def detect_batch_region(tickers: Iterable[str], *, tolerance: float = 0.0) -> RegionDetection:
    """Return the dominant region, or raise when the minority share exceeds ``tolerance``."""

    detections = {ticker: detect_region(ticker) for ticker in dict.fromkeys(tickers)}
    if not detections:
        raise ValueError("Tickers must be non-empty")
    counts = Counter(detections.values())
    region, dominant = counts.most_common(1)[0]
    total = len(detections)
    minority_share = (total - dominant) / total
    result = RegionDetection(
        region=region,
        detections=detections,
        counts={r: counts.get(r, 0) for r in TaxRegion},
    )
    if minority_share > tolerance:
        india = sorted(t for t, r in detections.items() if r is TaxRegion.INDIA)
        usa = sorted(t for t, r in detections.items() if r is TaxRegion.USA)
        raise MixedRegionError(
            "Batch contains tickers from multiple regions (India and USA): "
            f"India {', '.join(india)}; USA {', '.join(usa)}. "
            "All tickers in a batch must be from the same region.",
            detections={t: r.value for t, r in detections.items()},
        )
    return result


__all__ = [
    "RegionDetection",
    "detect_region",
    "detect_batch_region",
    "currency_for_region",
]
