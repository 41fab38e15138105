"""Strategies for protecting an object from deletion until cleanup completes."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging

from .manifest import Resource
from .store import Client

__all__ = [
    "Finalizer",
    "APIFinalizer",
    "FinalizerFns",
    "NopFinalizer",
]

_LOGGER = logging.getLogger(__name__)

FinalizerFn = Callable[[Resource], Awaitable[None]]


class Finalizer(ABC):
    """Manages the finalizer that blocks hard deletion of an object."""

    @abstractmethod
    async def add_finalizer(self, obj: Resource) -> None:
        """Ensure the finalizer is present on the object."""

    @abstractmethod
    async def remove_finalizer(self, obj: Resource) -> None:
        """Ensure the finalizer is absent from the object."""


class APIFinalizer(Finalizer):
    """Adds and removes a finalizer string by updating the object in its cluster."""

    def __init__(self, client: Client, finalizer: str) -> None:
        """Initialize APIFinalizer.

        Args:
            client: Client of the cluster that stores the object
            finalizer: The finalizer string to manage
        """
        self._client = client
        self._finalizer = finalizer

    async def add_finalizer(self, obj: Resource) -> None:
        """Add the finalizer to the object, if not already present."""
        if self._finalizer in obj.metadata.finalizers:
            return
        obj.metadata.finalizers.append(self._finalizer)
        _LOGGER.debug("Adding finalizer %s to %s", self._finalizer, obj.resource_id)
        await self._client.update(obj)

    async def remove_finalizer(self, obj: Resource) -> None:
        """Remove the finalizer from the object, if present."""
        if self._finalizer not in obj.metadata.finalizers:
            return
        obj.metadata.finalizers = [
            f for f in obj.metadata.finalizers if f != self._finalizer
        ]
        _LOGGER.debug(
            "Removing finalizer %s from %s", self._finalizer, obj.resource_id
        )
        await self._client.update(obj)


@dataclass
class FinalizerFns(Finalizer):
    """A Finalizer backed by coroutine functions, a missing function is a no-op."""

    add_finalizer_fn: FinalizerFn | None = None
    remove_finalizer_fn: FinalizerFn | None = None

    async def add_finalizer(self, obj: Resource) -> None:
        if self.add_finalizer_fn is not None:
            await self.add_finalizer_fn(obj)

    async def remove_finalizer(self, obj: Resource) -> None:
        if self.remove_finalizer_fn is not None:
            await self.remove_finalizer_fn(obj)


class NopFinalizer(Finalizer):
    """A Finalizer that does nothing."""

    async def add_finalizer(self, obj: Resource) -> None:
        pass

    async def remove_finalizer(self, obj: Resource) -> None:
        pass
