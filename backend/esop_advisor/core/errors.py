"""Error taxonomy shared by the engine and the HTTP layer."""

from __future__ import annotations

from typing import Any, Sequence


class EsopAdvisorError(Exception):
    """Base error carrying an HTTP status and a stable error code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        return {"status": "error", "message": self.message, "code": self.code}


class ValidationError(EsopAdvisorError):
    """Schema or business-rule violation that rejects the whole batch."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        errors: Sequence[str] | None = None,
        warnings: Sequence[str] | None = None,
        summary: dict[str, Any] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])
        self.summary = summary

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["errors"] = self.errors
        payload["warnings"] = self.warnings
        if self.summary is not None:
            payload["summary"] = self.summary
        return payload


class MixedRegionError(ValidationError):
    """Raised when a batch holds tickers from more than one tax region."""

    def __init__(self, message: str, *, detections: dict[str, str]) -> None:
        super().__init__(message, errors=[message], code="MIXED_REGIONS")
        self.detections = detections


class AuthenticationError(EsopAdvisorError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationError(EsopAdvisorError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class NotFoundError(EsopAdvisorError):
    status_code = 404
    code = "NOT_FOUND_ERROR"


class PriceResolutionError(EsopAdvisorError):
    """A quote could not be obtained for a ticker."""

    status_code = 502
    code = "PRICE_RESOLUTION_ERROR"

    def __init__(self, ticker: str, reason: str) -> None:
        super().__init__(f"Unable to resolve price for {ticker}: {reason}")
        self.ticker = ticker
        self.reason = reason


class ComputationError(EsopAdvisorError):
    """A validated row still failed to compute; indicates a defect."""

    code = "COMPUTATION_ERROR"


__all__ = [
    "EsopAdvisorError",
    "ValidationError",
    "MixedRegionError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "PriceResolutionError",
    "ComputationError",
]
