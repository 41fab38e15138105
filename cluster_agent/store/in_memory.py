"""Module for an in memory object store client."""

import copy
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, UTC
import logging
from typing import Any, DefaultDict
import uuid

from cluster_agent.exceptions import ObjectNotFoundError
from cluster_agent.manifest import NamedResource, Resource, ResourceList

from .client import Applicator, Client, StoreEvent

_LOGGER = logging.getLogger(__name__)


class InMemoryClient(Client, Applicator):
    """In-memory implementation of the Client and Applicator interfaces.

    Objects are keyed by NamedResource and follow the life-cycle rules of an
    API server: deleting an object that still has finalizers only marks it as
    deleted, and the object is removed once the last finalizer is cleared.
    Supports event listeners for object and status changes.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryClient."""
        self._objects: dict[NamedResource, Resource] = {}
        self._listeners: DefaultDict[
            StoreEvent, list[Callable[[NamedResource, Resource], None]]
        ] = defaultdict(list)
        self._version = 0

    def add_object(self, obj: Resource) -> None:
        """Add an object to the store as-is, e.g. to seed the contents of a cluster."""
        stored = obj.deepcopy()
        if stored.metadata.resource_version is None:
            stored.metadata.resource_version = self._next_version()
        _LOGGER.debug("Adding object %s to store", stored.resource_id)
        self._objects[stored.resource_id] = stored
        self._fire_event(StoreEvent.OBJECT_ADDED, stored)

    def get_object(self, resource_id: NamedResource) -> Resource | None:
        """Return a copy of an object without the semantics of a cluster call."""
        if (obj := self._objects.get(resource_id)) is not None:
            return obj.deepcopy()
        return None

    async def get(self, resource_id: NamedResource) -> Resource:
        """Retrieve an object by resource identity."""
        return self._require(resource_id).deepcopy()

    async def list_objects(self, template: ResourceList) -> ResourceList:
        """Return a list of all objects of the kind (and namespace) of the template."""
        items = [
            obj.deepcopy()
            for resource_id, obj in sorted(
                self._objects.items(), key=lambda item: str(item[0])
            )
            if resource_id.kind == template.kind
            and (
                template.namespace is None
                or resource_id.namespace == template.namespace
            )
        ]
        return ResourceList(
            api_version=template.api_version,
            kind=template.kind,
            namespace=template.namespace,
            items=items,
        )

    async def update(self, obj: Resource) -> None:
        """Update the metadata and spec of an existing object."""
        existing = self._require(obj.resource_id)
        updated = existing.deepcopy()
        updated.metadata = copy.deepcopy(obj.metadata)
        # Fields owned by the store are not writable by clients
        updated.metadata.uid = existing.metadata.uid
        updated.metadata.creation_timestamp = existing.metadata.creation_timestamp
        updated.metadata.deletion_timestamp = existing.metadata.deletion_timestamp
        updated.metadata.generation = existing.metadata.generation
        self._write_spec(updated, obj.spec)
        updated.metadata.resource_version = self._next_version()
        obj.metadata.resource_version = updated.metadata.resource_version

        if updated.is_deleted() and not updated.metadata.finalizers:
            _LOGGER.debug("Last finalizer of %s removed", updated.resource_id)
            self._remove(updated)
            return
        self._objects[updated.resource_id] = updated
        self._fire_event(StoreEvent.OBJECT_UPDATED, updated)

    async def update_status(self, obj: Resource) -> None:
        """Update the status of an existing object."""
        existing = self._require(obj.resource_id)
        updated = existing.deepcopy()
        updated.status = copy.deepcopy(obj.status)
        updated.metadata.resource_version = self._next_version()
        obj.metadata.resource_version = updated.metadata.resource_version
        self._objects[updated.resource_id] = updated
        self._fire_event(StoreEvent.STATUS_UPDATED, updated)

    async def delete(self, obj: Resource) -> None:
        """Request deletion of an object."""
        existing = self._require(obj.resource_id)
        if not existing.metadata.finalizers:
            self._remove(existing)
            return
        if existing.is_deleted():
            _LOGGER.debug("Deletion of %s already requested", existing.resource_id)
            return
        _LOGGER.debug(
            "Marking %s as deleted, waiting on finalizers %s",
            existing.resource_id,
            existing.metadata.finalizers,
        )
        existing.metadata.deletion_timestamp = datetime.now(UTC)
        existing.metadata.resource_version = self._next_version()
        self._fire_event(StoreEvent.OBJECT_UPDATED, existing)

    async def apply(self, obj: Resource) -> None:
        """Create the object, or update its desired state if it already exists."""
        if (existing := self._objects.get(obj.resource_id)) is None:
            created = obj.deepcopy()
            created.metadata.uid = str(uuid.uuid4())
            created.metadata.creation_timestamp = datetime.now(UTC)
            created.metadata.deletion_timestamp = None
            created.metadata.generation = 1
            created.metadata.resource_version = self._next_version()
            _LOGGER.debug("Creating object %s", created.resource_id)
            self._objects[created.resource_id] = created
            self._fire_event(StoreEvent.OBJECT_ADDED, created)
            return

        updated = existing.deepcopy()
        updated.api_version = obj.api_version
        updated.metadata.labels = copy.deepcopy(obj.metadata.labels)
        updated.metadata.annotations = copy.deepcopy(obj.metadata.annotations)
        self._write_spec(updated, obj.spec)
        updated.metadata.resource_version = self._next_version()
        _LOGGER.debug("Updating object %s", updated.resource_id)
        self._objects[updated.resource_id] = updated
        self._fire_event(StoreEvent.OBJECT_UPDATED, updated)

    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[[NamedResource, Resource], None],
        flush: bool = False,
    ) -> Callable[[], None]:
        """Register a callback for a specific event.

        When `flush` is set, the callback is invoked for every object already
        in the store, to let watchers catch up with existing state.

        Returns a callable that can be called to remove the listener.
        """

        def remove() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        self._listeners[event].append(callback)

        if flush:
            _LOGGER.debug("Flushing objects for event type %s", event)
            for resource_id, obj in list(self._objects.items()):
                callback(resource_id, obj.deepcopy())

        return remove

    def _require(self, resource_id: NamedResource) -> Resource:
        if (obj := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(resource_id)
        return obj

    def _remove(self, obj: Resource) -> None:
        _LOGGER.debug("Removing object %s from store", obj.resource_id)
        del self._objects[obj.resource_id]
        self._fire_event(StoreEvent.OBJECT_DELETED, obj)

    def _write_spec(self, obj: Resource, spec: dict[str, Any] | None) -> None:
        if obj.spec != spec:
            obj.metadata.generation = (obj.metadata.generation or 0) + 1
            obj.spec = copy.deepcopy(spec)

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _fire_event(self, event: StoreEvent, obj: Resource) -> None:
        for cb in list(self._listeners[event]):  # Iterate over a copy for safe removal
            try:
                cb(obj.resource_id, obj.deepcopy())
            except Exception:
                _LOGGER.exception("Store listener callback failed for event %s", event)
