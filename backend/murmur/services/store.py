"""
Murmur Backend — Store Operation Guards
========================================

What:  Two helpers every service uses around its database work:
       - store_operation(): bounded timeout + error translation
       - conflict_retrying(): tenacity loop for optimistic re-read/re-write
Why:   No request may wait on the store forever, and a storage failure must
       surface as TransientStoreError (retryable) rather than being confused
       with a business-rule failure.

Error translation (store_operation):
    MurmurError subclasses   → propagate unchanged (business rules)
    asyncio.TimeoutError     → TransientStoreError
    SQLAlchemyError          → TransientStoreError (driver detail logged only)

Conflict retry (conflict_retrying):
    Follow and like toggles read current state, then insert or delete a row.
    Two concurrent requests can both read "absent" and both insert; the loser
    gets an IntegrityError from the composite primary key. The caller rolls
    back and tenacity runs the attempt again, which re-reads the state
    written by the winner.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from murmur.config import settings
from murmur.exceptions import MurmurError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def store_operation(description: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorate an async service method that talks to the store.

    Args:
        description: Short human phrase used in logs ("toggle follow").

    Usage:
        @store_operation("list notes")
        async def list_notes(self, db, owner_id): ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await asyncio.wait_for(
                    func(*args, **kwargs),
                    timeout=settings.db_operation_timeout,
                )
            except MurmurError:
                raise
            except asyncio.TimeoutError:
                logger.error(
                    "Store operation '%s' timed out after %.1fs",
                    description,
                    settings.db_operation_timeout,
                )
                raise TransientStoreError(
                    context={"operation": description, "reason": "timeout"},
                )
            except SQLAlchemyError as e:
                logger.error(
                    "Store operation '%s' failed: %s",
                    description,
                    str(e),
                    exc_info=True,
                )
                raise TransientStoreError(
                    context={"operation": description, "error_type": type(e).__name__},
                )

        return wrapper

    return decorator


def conflict_retrying() -> AsyncRetrying:
    """
    Build a tenacity retry loop for optimistic writes.

    Usage:
        async for attempt in conflict_retrying():
            with attempt:
                ...read, decide, write, flush...

    After the last attempt the IntegrityError is re-raised and
    store_operation() turns it into a TransientStoreError.
    """
    return AsyncRetrying(
        retry=retry_if_exception_type(IntegrityError),
        stop=stop_after_attempt(settings.conflict_retry_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.conflict_retry_wait,
            max=settings.conflict_retry_wait * 8,
            jitter=settings.conflict_retry_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
