"""Representation of the objects held by the local and remote clusters.

Objects are modelled generically (in the spirit of an unstructured Kubernetes
object) since the agent syncs arbitrary claim and extension kinds. The metadata
and condition blocks are typed so that the reconcilers can reason about
deletion, finalizers and status without poking at raw dictionaries.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
import logging
from pathlib import Path
from typing import Any, Self

import aiofiles
import yaml
from mashumaro import DataClassDictMixin, field_options
from mashumaro.codecs.yaml import yaml_decode, yaml_encode
from mashumaro.config import BaseConfig

from .exceptions import InputException

__all__ = [
    "GroupVersionKind",
    "NamedResource",
    "ObjectMeta",
    "Condition",
    "ResourceStatus",
    "Resource",
    "ResourceList",
    "is_established",
    "sanitized_copy",
    "parse_raw_obj",
    "read_objects",
]

_LOGGER = logging.getLogger(__name__)


CRD_KIND = "CustomResourceDefinition"
CRD_API_VERSION = "apiextensions.k8s.io/v1"
LIST_KIND = "List"
ESTABLISHED = "Established"
CONDITION_TRUE = "True"
CONDITION_FALSE = "False"


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all serializable manifest objects."""

    def compact_dict(self) -> dict[str, Any]:
        """Return a compact dictionary representation of the object."""
        return self.to_dict()

    @classmethod
    def parse_yaml(cls, content: str) -> Self:
        """Parse a serialized manifest."""
        return yaml_decode(content, cls)

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        # The YAML loader already resolves timestamps into datetime objects
        return {
            k: v.isoformat() if isinstance(v, datetime) else v for k, v in d.items()
        }

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True
        allow_deserialization_not_by_alias = True


@dataclass(frozen=True, order=True)
class GroupVersionKind:
    """The group, version and kind of a resource type."""

    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        """Return the apiVersion string, e.g. `example.org/v1`."""
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> "GroupVersionKind":
        """Build a GroupVersionKind from an apiVersion string and kind."""
        group, _, version = api_version.rpartition("/")
        return cls(group=group, version=version, kind=kind)

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ObjectMeta(BaseManifest):
    """Metadata common to all objects."""

    name: str
    """The name of the object."""

    namespace: str | None = None
    """The namespace of the object, unset for cluster scoped objects."""

    uid: str | None = None
    """Identifier assigned by the cluster that stores the object."""

    resource_version: str | None = field(
        metadata=field_options(alias="resourceVersion"), default=None
    )
    """Opaque version assigned by the cluster on every write."""

    generation: int | None = None
    """Sequence number of the desired state, bumped on spec changes."""

    creation_timestamp: datetime | None = field(
        metadata=field_options(alias="creationTimestamp"), default=None
    )

    deletion_timestamp: datetime | None = field(
        metadata=field_options(alias="deletionTimestamp"), default=None
    )
    """Set once deletion was requested while finalizers are still present."""

    labels: dict[str, str] | None = None

    annotations: dict[str, str] | None = None

    finalizers: list[str] = field(default_factory=list)
    """Markers that block hard deletion of the object until removed."""

    owner_references: list[dict[str, Any]] | None = field(
        metadata=field_options(alias="ownerReferences"), default=None
    )

    managed_fields: list[dict[str, Any]] | None = field(
        metadata=field_options(alias="managedFields"), default=None
    )


@dataclass
class Condition(BaseManifest):
    """A typed status entry describing the latest observation of an object."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = field(
        metadata=field_options(alias="lastTransitionTime"), default=None
    )

    def with_message(self, message: str) -> "Condition":
        """Return a copy of the condition with the supplied message."""
        cond = copy.copy(self)
        cond.message = message
        return cond

    def equal(self, other: "Condition") -> bool:
        """Return True if the conditions are equal, ignoring transition time."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.reason == other.reason
            and self.message == other.message
        )


@dataclass
class ResourceStatus:
    """The status block of an object.

    Conditions are typed, all other status fields are opaque to the agent.
    """

    conditions: list[Condition] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse_doc(cls, doc: dict[str, Any] | None) -> "ResourceStatus":
        """Parse the status block of a kubernetes object."""
        if not doc:
            return cls()
        fields = dict(doc)
        conditions = [Condition.from_dict(c) for c in fields.pop("conditions", ())]
        return cls(conditions=conditions, fields=fields)

    def to_doc(self) -> dict[str, Any]:
        """Return the status block as a kubernetes style dictionary."""
        doc = copy.deepcopy(self.fields)
        if self.conditions:
            doc["conditions"] = [c.to_dict() for c in self.conditions]
        return doc


@dataclass
class Resource:
    """A generic kubernetes object of any kind."""

    api_version: str
    """The apiVersion of the object."""

    kind: str
    """The kind of the object."""

    metadata: ObjectMeta
    """The object metadata."""

    spec: dict[str, Any] | None = None
    """The desired state of the object."""

    status: ResourceStatus = field(default_factory=ResourceStatus)
    """The observed state of the object."""

    @classmethod
    def new(
        cls, gvk: GroupVersionKind, name: str = "", namespace: str | None = None
    ) -> "Resource":
        """Create an empty object of the specified kind."""
        return cls(
            api_version=gvk.api_version,
            kind=gvk.kind,
            metadata=ObjectMeta(name=name, namespace=namespace),
        )

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Resource":
        """Parse a Resource from a raw kubernetes object."""
        if not (api_version := doc.get("apiVersion")):
            raise InputException(f"Invalid object missing apiVersion: {doc}")
        if not (kind := doc.get("kind")):
            raise InputException(f"Invalid object missing kind: {doc}")
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid object missing metadata: {doc}")
        if not metadata.get("name"):
            raise InputException(f"Invalid object missing metadata.name: {doc}")
        return cls(
            api_version=api_version,
            kind=kind,
            metadata=ObjectMeta.from_dict(metadata),
            spec=doc.get("spec"),
            status=ResourceStatus.parse_doc(doc.get("status")),
        )

    def to_doc(self) -> dict[str, Any]:
        """Return the object as a kubernetes style dictionary."""
        doc: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.metadata.to_dict(),
        }
        if self.spec is not None:
            doc["spec"] = copy.deepcopy(self.spec)
        if status := self.status.to_doc():
            doc["status"] = status
        return doc

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml.dump(self.to_doc(), sort_keys=False)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def gvk(self) -> GroupVersionKind:
        """The group, version and kind of the object."""
        return GroupVersionKind.from_api_version(self.api_version, self.kind)

    @property
    def resource_id(self) -> NamedResource:
        """Identifier used to key the object in a store."""
        return NamedResource(self.kind, self.metadata.namespace, self.metadata.name)

    def is_deleted(self) -> bool:
        """Return True if deletion of the object was requested."""
        return self.metadata.deletion_timestamp is not None

    def deepcopy(self) -> "Resource":
        """Return a deep copy of the object."""
        return copy.deepcopy(self)


@dataclass
class ResourceList:
    """A list of objects of a single kind."""

    api_version: str
    """The apiVersion of the items."""

    kind: str
    """The kind of the items."""

    namespace: str | None = None
    """Restrict the list to a single namespace, or None for all namespaces."""

    items: list[Resource] = field(default_factory=list)

    @classmethod
    def for_gvk(
        cls, gvk: GroupVersionKind, namespace: str | None = None
    ) -> "ResourceList":
        """Create an empty list for the specified kind."""
        return cls(api_version=gvk.api_version, kind=gvk.kind, namespace=namespace)

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind.from_api_version(self.api_version, self.kind)


def crd_resource_id(name: str) -> NamedResource:
    """Return the identifier of a (cluster scoped) CustomResourceDefinition."""
    return NamedResource(kind=CRD_KIND, namespace=None, name=name)


def is_established(crd: Resource) -> bool:
    """Return True if the CustomResourceDefinition is ready to serve its kind."""
    return any(
        cond.type == ESTABLISHED and cond.status == CONDITION_TRUE
        for cond in crd.status.conditions
    )


def sanitized_copy(obj: Resource) -> Resource:
    """Return a copy of the object without metadata specific to its cluster.

    Owner references point at objects in the source cluster and versions and
    uids are assigned by the source API server, so these are meaningless in
    another one. Finalizers belong to the controllers of the source cluster.
    """
    out = obj.deepcopy()
    out.metadata.resource_version = None
    out.metadata.uid = None
    out.metadata.creation_timestamp = None
    out.metadata.deletion_timestamp = None
    out.metadata.generation = None
    out.metadata.owner_references = None
    out.metadata.managed_fields = None
    out.metadata.finalizers = []
    out.status = ResourceStatus()
    return out


def parse_raw_obj(doc: dict[str, Any]) -> list[Resource]:
    """Parse a raw kubernetes document into objects, expanding `List` kinds."""
    if doc.get("kind") == LIST_KIND:
        return [Resource.parse_doc(item) for item in doc.get("items") or ()]
    return [Resource.parse_doc(doc)]


async def read_objects(path: Path) -> list[Resource]:
    """Read all objects in a (multi-document) YAML file."""
    async with aiofiles.open(str(path)) as objects_file:
        content = await objects_file.read()
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse objects file {path}: {err}") from err
    objects: list[Resource] = []
    for doc in docs:
        if not doc:
            continue
        objects.extend(parse_raw_obj(doc))
    _LOGGER.debug("Read %d objects from %s", len(objects), path)
    return objects
