import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from storefront.common import logger
from storefront.common.errors import PersistenceError, StorefrontError

T = TypeVar("T")


@dataclass(frozen=True)
class OpResult(Generic[T]):
    """Outcome of a mutating cart/order/wishlist operation.

    Either ``value`` is set (success) or ``error`` carries the typed failure,
    so callers can tell "nothing to do" from "transient failure, retry".
    """

    value: Optional[T] = None
    error: Optional[StorefrontError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    @property
    def retryable(self) -> bool:
        return bool(self.error is not None and self.error.retryable)

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Any = True) -> "OpResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: StorefrontError) -> "OpResult":
        return cls(error=error)


def as_result(event: str):
    """Operation boundary for coroutines taking an AsyncSession first.

    Typed errors and database errors roll the session back and come out as a
    failed OpResult; anything else propagates.
    """

    def deco(fn: Callable[..., Awaitable[Any]]):
        @functools.wraps(fn)
        async def wrapper(session, *args, **kwargs) -> OpResult:
            try:
                value = await fn(session, *args, **kwargs)
            except StorefrontError as exc:
                await session.rollback()
                logger.warning(f"{event}.failed", extra={"code": exc.code, "reason": exc.message})
                return OpResult.failure(exc)
            except SQLAlchemyError as exc:
                await session.rollback()
                err = PersistenceError.from_db_error(f"{event} could not be persisted", exc)
                logger.error(f"{event}.db_error", extra={"code": err.code, "retryable": err.retryable}, exc_info=exc)
                return OpResult.failure(err)
            return OpResult.success(value)
        return wrapper
    return deco


def db_read(event: str):
    """Read projections: database errors surface as PersistenceError instead of leaking SQLAlchemy types."""

    def deco(fn: Callable[..., Awaitable[Any]]):
        @functools.wraps(fn)
        async def wrapper(session, *args, **kwargs):
            try:
                return await fn(session, *args, **kwargs)
            except SQLAlchemyError as exc:
                err = PersistenceError.from_db_error(f"{event} failed", exc)
                logger.error(f"{event}.db_error", extra={"code": err.code, "retryable": err.retryable}, exc_info=exc)
                raise err from exc
        return wrapper
    return deco
