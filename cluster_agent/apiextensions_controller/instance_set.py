"""Strategies describing the set of instances of one extension kind."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from cluster_agent.manifest import GroupVersionKind, Resource, ResourceList

__all__ = [
    "InstanceSet",
    "InstanceSetFns",
    "KindInstanceSet",
]


class InstanceSet(ABC):
    """Makes listing and deleting instances generic over the kind."""

    @abstractmethod
    def new_list(self) -> ResourceList:
        """Return an empty list used as the template to list instances."""

    @abstractmethod
    def get_items(self, obj_list: ResourceList) -> list[Resource]:
        """Return the instances contained in a fetched list."""

    @abstractmethod
    def new_instance(self) -> Resource:
        """Return a new empty instance."""


@dataclass
class InstanceSetFns(InstanceSet):
    """An InstanceSet backed by plain functions."""

    new_list_fn: Callable[[], ResourceList]
    get_items_fn: Callable[[ResourceList], list[Resource]]
    new_instance_fn: Callable[[], Resource]

    def new_list(self) -> ResourceList:
        return self.new_list_fn()

    def get_items(self, obj_list: ResourceList) -> list[Resource]:
        return self.get_items_fn(obj_list)

    def new_instance(self) -> Resource:
        return self.new_instance_fn()


class KindInstanceSet(InstanceSet):
    """The instances of a single kind, optionally within a single namespace."""

    def __init__(self, gvk: GroupVersionKind, namespace: str | None = None) -> None:
        """Initialize KindInstanceSet."""
        self._gvk = gvk
        self._namespace = namespace

    def new_list(self) -> ResourceList:
        return ResourceList.for_gvk(self._gvk, namespace=self._namespace)

    def get_items(self, obj_list: ResourceList) -> list[Resource]:
        return [item.deepcopy() for item in obj_list.items]

    def new_instance(self) -> Resource:
        return Resource.new(self._gvk, namespace=self._namespace)
