"""Tests for syncing claims between two in-memory clusters."""

from datetime import timedelta

import pytest

from cluster_agent.claim_controller import ClaimReconciler
from cluster_agent.conditions import TYPE_AGENT_SYNCED, get_condition
from cluster_agent.config import ClaimReconcilerConfig, WaitTiers
from cluster_agent.manifest import GroupVersionKind, NamedResource, Resource
from cluster_agent.reconcile import Request, Result
from cluster_agent.store import InMemoryClient

GVK = GroupVersionKind(group="cache.example.org", version="v1alpha1", kind="Redis")
RESOURCE_ID = NamedResource(kind="Redis", namespace="team-a", name="sessions")
REQUEST = Request(name="sessions", namespace="team-a")
FINALIZER = "agent.example.org/test"
WAITS = WaitTiers()


@pytest.fixture(name="local")
def local_fixture() -> InMemoryClient:
    """The local cluster with a single claim."""
    local = InMemoryClient()
    claim = Resource.new(GVK, "sessions", "team-a")
    claim.spec = {"engineVersion": "7.2"}
    claim.metadata.labels = {"team": "a"}
    claim.metadata.uid = "local-uid"
    local.add_object(claim)
    return local


@pytest.fixture(name="remote")
def remote_fixture() -> InMemoryClient:
    return InMemoryClient()


@pytest.fixture(name="reconciler")
def reconciler_fixture(
    local: InMemoryClient, remote: InMemoryClient
) -> ClaimReconciler:
    return ClaimReconciler(
        local,
        remote,
        ClaimReconcilerConfig(gvk=GVK, waits=WAITS, finalizer_name=FINALIZER),
    )


async def test_create_remote_claim(
    reconciler: ClaimReconciler, local: InMemoryClient, remote: InMemoryClient
) -> None:
    """A new claim is created in the remote cluster and marked as synced."""
    assert await reconciler.reconcile(REQUEST) == Result(requeue_after=WAITS.long)

    remote_claim = remote.get_object(RESOURCE_ID)
    assert remote_claim is not None
    assert remote_claim.spec == {"engineVersion": "7.2"}
    assert remote_claim.metadata.labels == {"team": "a"}
    assert remote_claim.metadata.uid != "local-uid"
    assert remote_claim.metadata.finalizers == []

    local_claim = local.get_object(RESOURCE_ID)
    assert local_claim is not None
    assert local_claim.metadata.finalizers == [FINALIZER]
    cond = get_condition(local_claim.status.conditions, TYPE_AGENT_SYNCED)
    assert cond is not None
    assert cond.status == "True"
    assert cond.reason == "Success"


async def test_update_and_mirror_status(
    reconciler: ClaimReconciler, local: InMemoryClient, remote: InMemoryClient
) -> None:
    """Spec changes flow to the remote claim and remote status flows back."""
    await reconciler.reconcile(REQUEST)

    remote_claim = await remote.get(RESOURCE_ID)
    remote_claim.status.fields = {"endpoint": "redis.team-a:6379"}
    await remote.update_status(remote_claim)

    local_claim = await local.get(RESOURCE_ID)
    local_claim.spec = {"engineVersion": "7.4"}
    await local.update(local_claim)

    assert await reconciler.reconcile(REQUEST) == Result(requeue_after=WAITS.long)

    remote_claim = await remote.get(RESOURCE_ID)
    assert remote_claim.spec == {"engineVersion": "7.4"}
    assert remote_claim.metadata.generation == 2
    local_claim = await local.get(RESOURCE_ID)
    assert local_claim.status.fields == {"endpoint": "redis.team-a:6379"}
    assert len(local_claim.status.conditions) == 1


async def test_delete_claim(
    reconciler: ClaimReconciler, local: InMemoryClient, remote: InMemoryClient
) -> None:
    """Deleting the local claim deletes the remote one before releasing it."""
    await reconciler.reconcile(REQUEST)
    await local.delete(await local.get(RESOURCE_ID))

    # The finalizer keeps the local claim until the remote claim is gone
    local_claim = local.get_object(RESOURCE_ID)
    assert local_claim is not None
    assert local_claim.is_deleted()

    assert await reconciler.reconcile(REQUEST) == Result(requeue_after=WAITS.tiny)
    assert remote.get_object(RESOURCE_ID) is None
    local_claim = local.get_object(RESOURCE_ID)
    assert local_claim is not None
    cond = get_condition(local_claim.status.conditions, TYPE_AGENT_SYNCED)
    assert cond is not None
    assert cond.message == "deletion is successfully requested"

    assert await reconciler.reconcile(REQUEST) == Result()
    assert local.get_object(RESOURCE_ID) is None

    # Once gone there is nothing left to reconcile
    assert await reconciler.reconcile(REQUEST) == Result()


async def test_steady_state_is_stable(
    reconciler: ClaimReconciler, local: InMemoryClient, remote: InMemoryClient
) -> None:
    """Repeated passes without changes don't change the desired state."""
    first = await reconciler.reconcile(REQUEST)
    remote_claim = remote.get_object(RESOURCE_ID)
    second = await reconciler.reconcile(REQUEST)

    assert first == second == Result(requeue_after=timedelta(minutes=5))
    again = remote.get_object(RESOURCE_ID)
    assert again is not None and remote_claim is not None
    assert again.metadata.generation == remote_claim.metadata.generation
    assert again.metadata.uid == remote_claim.metadata.uid
    local_claim = local.get_object(RESOURCE_ID)
    assert local_claim is not None
    assert local_claim.metadata.finalizers == [FINALIZER]
