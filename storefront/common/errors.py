import asyncio
from typing import Any, Dict, Optional
from fastapi import status
from sqlalchemy.exc import DBAPIError, OperationalError


class StorefrontError(Exception):
    """Base for every failure the cart/order core reports to its callers."""

    code = "STOREFRONT_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_details(self) -> Dict[str, Any]:
        return {"message": self.message, **self.details}


class NotFoundError(StorefrontError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(StorefrontError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class EmptyCartError(StorefrontError):
    code = "EMPTY_CART"
    status_code = status.HTTP_409_CONFLICT


class PersistenceError(StorefrontError):
    code = "PERSISTENCE_ERROR"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, retryable: bool = False):
        super().__init__(message, details)
        self.retryable = retryable

    @classmethod
    def from_db_error(cls, message: str, exc: BaseException) -> "PersistenceError":
        return cls(message, details={"reason": type(exc).__name__}, retryable=is_recoverable_exception(exc))


def is_recoverable_exception(exc: BaseException) -> bool:
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, (TimeoutError, ConnectionError, OperationalError)):
        return True
    if isinstance(exc, DBAPIError):
        # connection_invalidated is set when the pool dropped the connection
        if getattr(exc, "connection_invalidated", False):
            return True
        orig = getattr(exc, "orig", None)
        if orig is not None:
            name = type(orig).__name__.lower()
            if any(k in name for k in ("timeout", "connection", "brokenpipe", "connectionrefused", "connectionreset")):
                return True
    return False
