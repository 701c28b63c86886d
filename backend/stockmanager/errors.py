# Overview: Typed failures raised by the service layer and mapped to HTTP responses by routes.

"""
Error taxonomy for the stock & sales core.

Every service failure aborts its whole atomic unit and surfaces as exactly one
of these exceptions. Routes translate them with ``to_dict()`` / ``status_code``;
anything that is not a StockManagerError is treated as unexpected (logged, 500).
"""

from __future__ import annotations


class StockManagerError(Exception):
    """Base class for all typed service failures."""

    status_code = 500
    code = "ERROR"
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFoundError(StockManagerError):
    """Referenced entity does not exist or belongs to another seller."""

    status_code = 404
    code = "NOT_FOUND"


class ValidationError(StockManagerError, ValueError):
    """400-level input problem. Always a caller bug; never retried."""

    status_code = 400
    code = "INVALID_INPUT"

    def __init__(self, message: str, details: dict | None = None, code: str | None = None):
        super().__init__(message, details)
        if code:
            self.code = code


class InsufficientStockError(StockManagerError):
    """A stock change or settlement would drive stock below zero."""

    status_code = 409
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, requested: int, available: int, product_name: str | None = None):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.product_id = product_id


class ConflictError(StockManagerError):
    """
    Concurrent writers prevented the atomic unit from committing.

    No partial effects are ever visible, so callers may retry the whole
    operation from scratch.
    """

    status_code = 409
    code = "CONFLICT"
    retryable = True


class PermissionDeniedError(StockManagerError):
    status_code = 403
    code = "FORBIDDEN"


class UnexpectedError(StockManagerError):
    """Storage/environment fault. Details are never exposed to clients."""

    status_code = 500
    code = "UNEXPECTED"

    def to_dict(self) -> dict:
        return {"error": "Internal server error", "code": self.code, "details": {}}
