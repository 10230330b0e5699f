"""Model exports for the ESOP advisor service."""

from .esop import GRANT_STATUSES, EsopGrant

__all__ = ["EsopGrant", "GRANT_STATUSES"]
