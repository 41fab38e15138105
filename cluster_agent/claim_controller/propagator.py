"""Strategies for pushing the desired state of a local claim to the remote cluster."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
import copy
import logging

from cluster_agent.manifest import Resource, sanitized_copy
from cluster_agent.store import Applicator

__all__ = [
    "Propagator",
    "PropagateFn",
    "APIPropagator",
]

_LOGGER = logging.getLogger(__name__)


class Propagator(ABC):
    """Copies desired state from a local object to its remote counterpart."""

    @abstractmethod
    async def propagate(self, local: Resource, remote: Resource) -> None:
        """Push the state of `local` to `remote`.

        The `remote` object is the last observed state of the counterpart, or a
        new empty object of the same identity if it does not exist yet. Any
        changes made to `local` are persisted with the next status write.
        """


class PropagateFn(Propagator):
    """A Propagator backed by a coroutine function."""

    def __init__(self, fn: Callable[[Resource, Resource], Awaitable[None]]) -> None:
        """Initialize PropagateFn."""
        self._fn = fn

    async def propagate(self, local: Resource, remote: Resource) -> None:
        await self._fn(local, remote)


class APIPropagator(Propagator):
    """Applies the local spec to the remote cluster and mirrors back its status.

    The remote cluster is authoritative for the observed state of the claim,
    so all status fields besides the conditions managed by the agent are
    copied from the remote object into the local one.
    """

    def __init__(self, remote: Applicator) -> None:
        """Initialize APIPropagator.

        Args:
            remote: Applicator writing to the remote cluster
        """
        self._remote = remote

    async def propagate(self, local: Resource, remote: Resource) -> None:
        desired = sanitized_copy(local)
        desired.metadata.name = remote.metadata.name or local.metadata.name
        desired.metadata.namespace = (
            remote.metadata.namespace or local.metadata.namespace
        )
        _LOGGER.debug("Applying %s to the remote cluster", desired.resource_id)
        await self._remote.apply(desired)
        local.status.fields = copy.deepcopy(remote.status.fields)
