"""Schema exports for the ESOP advisor API."""

from .analytics import (
    AnalyticsEnvelope,
    AnalyticsMetaSchema,
    AnalyticsReportSchema,
    AnalyticsRequest,
    ChartSeriesSchema,
    ErrorEnvelope,
    PortfolioTotalsSchema,
    ProjectionSchema,
    RowCalculationSchema,
    TaxRatesSchema,
)
from .esop import GrantListResponse, GrantSchema, UploadResponse, ValidationRequest, ValidationResultSchema

__all__ = [
    "AnalyticsEnvelope",
    "AnalyticsMetaSchema",
    "AnalyticsReportSchema",
    "AnalyticsRequest",
    "ChartSeriesSchema",
    "ErrorEnvelope",
    "PortfolioTotalsSchema",
    "ProjectionSchema",
    "RowCalculationSchema",
    "TaxRatesSchema",
    "GrantListResponse",
    "GrantSchema",
    "UploadResponse",
    "ValidationRequest",
    "ValidationResultSchema",
]
