"""External collaborators: quote and FX rate providers."""

from .fx import FxProvider, FxRate, HttpFxProvider, StaticFxProvider
from .quotes import HttpQuoteProvider, InMemoryQuoteProvider, Quote, QuoteProvider, resolve_quotes

__all__ = [
    "FxProvider",
    "FxRate",
    "HttpFxProvider",
    "StaticFxProvider",
    "HttpQuoteProvider",
    "InMemoryQuoteProvider",
    "Quote",
    "QuoteProvider",
    "resolve_quotes",
]
