"""Tests for manifest library."""

from datetime import datetime, UTC
from pathlib import Path

import pytest

from cluster_agent.exceptions import InputException
from cluster_agent.manifest import (
    Condition,
    GroupVersionKind,
    NamedResource,
    Resource,
    ResourceList,
    crd_resource_id,
    is_established,
    parse_raw_obj,
    read_objects,
    sanitized_copy,
)

CLAIM_DOC = {
    "apiVersion": "database.example.org/v1",
    "kind": "Database",
    "metadata": {
        "name": "db",
        "namespace": "default",
        "uid": "1234",
        "resourceVersion": "7",
        "generation": 3,
        "creationTimestamp": "2024-01-02T03:04:05+00:00",
        "labels": {"team": "a"},
        "finalizers": ["agent.example.org/finalizer"],
        "ownerReferences": [{"kind": "Team", "name": "a"}],
    },
    "spec": {"size": "large"},
    "status": {
        "endpoint": "db.example.org",
        "conditions": [
            {
                "type": "AgentSynced",
                "status": "True",
                "reason": "Success",
                "lastTransitionTime": "2024-01-02T03:04:05+00:00",
            }
        ],
    },
}

OBJECTS_YAML = """\
---
apiVersion: database.example.org/v1
kind: Database
metadata:
  name: db
  namespace: default
  creationTimestamp: 2024-01-02T03:04:05Z
spec:
  size: small
---
apiVersion: v1
kind: List
items:
- apiVersion: apiextensions.k8s.io/v1
  kind: CustomResourceDefinition
  metadata:
    name: databases.database.example.org
  status:
    conditions:
    - type: Established
      status: "True"
      lastTransitionTime: 2024-01-02T03:04:05Z
"""


def test_group_version_kind() -> None:
    gvk = GroupVersionKind.from_api_version("example.org/v1", "Widget")
    assert gvk == GroupVersionKind(group="example.org", version="v1", kind="Widget")
    assert gvk.api_version == "example.org/v1"
    assert str(gvk) == "example.org/v1, Kind=Widget"

    core = GroupVersionKind.from_api_version("v1", "ConfigMap")
    assert core.group == ""
    assert core.api_version == "v1"


def test_named_resource() -> None:
    assert str(NamedResource("Widget", "ns", "foo")) == "Widget/ns/foo"
    assert str(crd_resource_id("widgets.example.org")) == (
        "CustomResourceDefinition/widgets.example.org"
    )


def test_parse_doc() -> None:
    """Test parsing a kubernetes object."""
    obj = Resource.parse_doc(CLAIM_DOC)
    assert obj.resource_id == NamedResource("Database", "default", "db")
    assert obj.gvk == GroupVersionKind("database.example.org", "v1", "Database")
    assert obj.metadata.resource_version == "7"
    assert obj.metadata.generation == 3
    assert obj.metadata.creation_timestamp == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert obj.metadata.finalizers == ["agent.example.org/finalizer"]
    assert obj.spec == {"size": "large"}
    assert obj.status.fields == {"endpoint": "db.example.org"}
    assert len(obj.status.conditions) == 1
    assert obj.status.conditions[0].type == "AgentSynced"
    assert not obj.is_deleted()

    assert Resource.parse_doc(obj.to_doc()) == obj


def test_to_doc() -> None:
    obj = Resource.new(GroupVersionKind("example.org", "v1", "Widget"), "foo")
    assert obj.to_doc() == {
        "apiVersion": "example.org/v1",
        "kind": "Widget",
        "metadata": {"name": "foo", "finalizers": []},
    }
    assert "kind: Widget" in obj.yaml()


@pytest.mark.parametrize(
    ("doc", "error"),
    [
        ({"kind": "Widget", "metadata": {"name": "a"}}, "missing apiVersion"),
        ({"apiVersion": "v1", "metadata": {"name": "a"}}, "missing kind"),
        ({"apiVersion": "v1", "kind": "Widget"}, "missing metadata"),
        ({"apiVersion": "v1", "kind": "Widget", "metadata": {}}, "missing metadata"),
        (
            {"apiVersion": "v1", "kind": "Widget", "metadata": {"namespace": "a"}},
            "missing metadata.name",
        ),
    ],
)
def test_parse_doc_invalid(doc: dict, error: str) -> None:
    with pytest.raises(InputException, match=error):
        Resource.parse_doc(doc)


def test_sanitized_copy() -> None:
    """Test that metadata specific to the source cluster is dropped."""
    obj = Resource.parse_doc(CLAIM_DOC)
    obj.metadata.deletion_timestamp = datetime.now(UTC)

    out = sanitized_copy(obj)

    assert out.resource_id == obj.resource_id
    assert out.spec == obj.spec
    assert out.metadata.labels == {"team": "a"}
    assert out.metadata.uid is None
    assert out.metadata.resource_version is None
    assert out.metadata.generation is None
    assert out.metadata.creation_timestamp is None
    assert not out.is_deleted()
    assert out.metadata.owner_references is None
    assert out.metadata.finalizers == []
    assert out.status.conditions == []
    assert out.status.fields == {}

    # The source object is not modified
    assert obj.metadata.uid == "1234"
    out.spec["size"] = "small"
    assert obj.spec == {"size": "large"}


def test_is_established() -> None:
    crd = Resource.new(
        GroupVersionKind("apiextensions.k8s.io", "v1", "CustomResourceDefinition"),
        "widgets.example.org",
    )
    assert not is_established(crd)
    crd.status.conditions = [Condition(type="Established", status="False")]
    assert not is_established(crd)
    crd.status.conditions = [
        Condition(type="NamesAccepted", status="True"),
        Condition(type="Established", status="True"),
    ]
    assert is_established(crd)


def test_condition_equal() -> None:
    cond = Condition(
        type="Ready",
        status="True",
        last_transition_time=datetime(2024, 1, 1, tzinfo=UTC),
    )
    other = cond.with_message("")
    other.last_transition_time = None
    assert cond.equal(other)
    assert not cond.equal(cond.with_message("changed"))
    assert cond.message == ""


def test_parse_raw_obj_list() -> None:
    objs = parse_raw_obj(
        {
            "apiVersion": "v1",
            "kind": "List",
            "items": [
                {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a"}},
                {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "b"}},
            ],
        }
    )
    assert [obj.name for obj in objs] == ["a", "b"]
    assert parse_raw_obj({"apiVersion": "v1", "kind": "List"}) == []


def test_resource_list() -> None:
    gvk = GroupVersionKind("example.org", "v1", "Widget")
    obj_list = ResourceList.for_gvk(gvk, namespace="ns")
    assert obj_list.gvk == gvk
    assert obj_list.namespace == "ns"
    assert obj_list.items == []


async def test_read_objects(tmp_path: Path) -> None:
    """Test reading objects from a multi-document file."""
    path = tmp_path / "objects.yaml"
    path.write_text(OBJECTS_YAML)

    objs = await read_objects(path)

    assert [str(obj.resource_id) for obj in objs] == [
        "Database/default/db",
        "CustomResourceDefinition/databases.database.example.org",
    ]
    assert objs[0].metadata.creation_timestamp == datetime(
        2024, 1, 2, 3, 4, 5, tzinfo=UTC
    )
    assert is_established(objs[1])


async def test_read_objects_invalid(tmp_path: Path) -> None:
    path = tmp_path / "objects.yaml"
    path.write_text("kind: [unterminated\n")

    with pytest.raises(InputException, match="Unable to parse objects file"):
        await read_objects(path)
