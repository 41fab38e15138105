"""Client interfaces for reading and writing objects in a cluster."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum

from cluster_agent.manifest import NamedResource, Resource, ResourceList


class StoreEvent(str, Enum):
    """Enum for store events."""

    OBJECT_ADDED = "object_added"
    OBJECT_UPDATED = "object_updated"
    OBJECT_DELETED = "object_deleted"
    STATUS_UPDATED = "status_updated"


class Client(ABC):
    """Abstract base class for a client of the object store of one cluster.

    Every call is a round trip to the cluster. Implementations must not hand
    out references to their internal state.
    """

    @abstractmethod
    async def get(self, resource_id: NamedResource) -> Resource:
        """Retrieve an object by resource identity.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    async def list_objects(self, template: ResourceList) -> ResourceList:
        """Return a list of all objects of the kind (and namespace) of the template."""

    @abstractmethod
    async def update(self, obj: Resource) -> None:
        """Update the metadata and spec of an existing object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    async def update_status(self, obj: Resource) -> None:
        """Update the status of an existing object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    async def delete(self, obj: Resource) -> None:
        """Request deletion of an object.

        An object with finalizers is only marked as deleted, and is removed
        once its finalizers are cleared.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """


class Applicator(ABC):
    """Abstract base class for writing the desired state of an object."""

    @abstractmethod
    async def apply(self, obj: Resource) -> None:
        """Create the object, or update it if it already exists."""


class ApplyFn(Applicator):
    """An Applicator backed by a coroutine function."""

    def __init__(self, fn: Callable[[Resource], Awaitable[None]]) -> None:
        """Initialize ApplyFn."""
        self._fn = fn

    async def apply(self, obj: Resource) -> None:
        """Create the object, or update it if it already exists."""
        await self._fn(obj)
