"""Types and helpers shared by the reconcilers.

A reconciler is invoked by the surrounding controller runtime with a
`Request` identifying an object, and answers with a `Result` telling the
runtime when to invoke it again. Unexpected failures are raised as a
`ReconcileError` that also carries the requested delay.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import TypeVar

from .exceptions import ObjectNotFoundError

__all__ = [
    "Request",
    "Result",
    "call",
    "ignore_not_found",
]

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Request:
    """Identity of the object to reconcile."""

    name: str
    namespace: str | None = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile pass.

    A `requeue_after` of None means the runtime should not schedule another
    pass, and only invoke the reconciler again on a watch event.
    """

    requeue_after: timedelta | None = None


async def call(aw: Awaitable[T], timeout: float | None = None) -> T:
    """Await a call to a cluster, bounded by the timeout if specified.

    An expired timeout raises `TimeoutError`, which callers handle like any
    other failure of the call.
    """
    if timeout is None:
        return await aw
    async with asyncio.timeout(timeout):
        return await aw


def ignore_not_found(err: Exception) -> Exception | None:
    """Return the error unless it signals the object does not exist."""
    if isinstance(err, ObjectNotFoundError):
        _LOGGER.debug("Ignoring not found error: %s", err)
        return None
    return err
