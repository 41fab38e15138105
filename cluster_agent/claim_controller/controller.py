"""
Claim Controller implementation.

This controller keeps a claim in the local (management) cluster in sync with
its counterpart in the remote (target) cluster. The desired state flows from
the local claim to the remote one through a Propagator, while the outcome of
every pass is written back to the local claim as an `AgentSynced` condition.

Key Concepts:
    - Claim: A namespaced local object whose fulfillment happens remotely.
    - Finalizer: Keeps the local claim around until the remote one is gone.
    - Propagator: Pushes local desired state to the remote counterpart.

Every pass is level triggered and idempotent: the controller runtime calls
`reconcile` on watch events and again after the requested delay, and a pass
repeated without external changes takes the same decisions. Each pass does at
most one remote read, one remote write and one local status write.
"""

from collections.abc import Awaitable
from datetime import timedelta
import logging
from typing import TypeVar

from cluster_agent.conditions import (
    agent_sync_error,
    agent_sync_success,
    set_condition,
)
from cluster_agent.config import ClaimReconcilerConfig
from cluster_agent.exceptions import ObjectNotFoundError, Origin, ReconcileError
from cluster_agent.finalizer import APIFinalizer, Finalizer
from cluster_agent.manifest import Condition, NamedResource, Resource
from cluster_agent.reconcile import Request, Result, call, ignore_not_found
from cluster_agent.store import Applicator, Client

from .propagator import APIPropagator, Propagator

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ERR_GET_INSTANCE = "get instance failed"
ERR_DELETE_INSTANCE = "delete instance failed"
ERR_ADD_FINALIZER = "add finalizer failed"
ERR_REMOVE_FINALIZER = "remove finalizer failed"
ERR_PUSH = "push local state failed"
ERR_UPDATE_STATUS = "update status failed"

MSG_DELETION_REQUESTED = "deletion is successfully requested"


class ClaimReconciler:
    """
    Reconciler for a single kind of claim.

    The reconciler holds no state across passes besides its collaborators, so
    many passes for distinct claims may run concurrently. The runtime is
    expected to never run two passes for the same claim at once.
    """

    def __init__(
        self,
        local: Client,
        remote: Client,
        config: ClaimReconcilerConfig,
        finalizer: Finalizer | None = None,
        propagator: Propagator | None = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            local: Client of the local cluster where claims are created
            remote: Client of the remote cluster where claims are fulfilled
            config: The configuration for the reconciler
            finalizer: Strategy for protecting local claims from deletion,
                defaults to a finalizer string managed through the local client
            propagator: Strategy for pushing the local state to the remote,
                defaults to applying through the remote client
        """
        self._local = local
        self._remote = remote
        self._config = config
        self._waits = config.waits
        self._finalizer = finalizer or APIFinalizer(local, config.finalizer_name)
        if propagator is None:
            if not isinstance(remote, Applicator):
                raise ValueError(
                    "A propagator is required when the remote client can't "
                    "apply objects"
                )
            propagator = APIPropagator(remote)
        self._propagator = propagator

    async def reconcile(self, request: Request) -> Result:
        """
        Reconcile the claim identified by the request.

        This method performs the following steps:
        1. Fetches the local claim, and its remote counterpart.
        2. If deletion of the local claim was requested, deletes the remote
           claim and removes the finalizer once the remote claim is gone.
        3. Otherwise ensures the finalizer and propagates the local state.

        Recoverable failures are recorded on the status of the local claim.

        Raises:
            ReconcileError: If the local claim could not be fetched, or its
                status could not be written.
        """
        resource_id = NamedResource(
            kind=self._config.gvk.kind,
            namespace=request.namespace,
            name=request.name,
        )
        _LOGGER.info("Reconciling %s", resource_id)
        try:
            local = await self._call(self._local.get(resource_id))
        except ObjectNotFoundError:
            _LOGGER.debug("%s no longer exists, nothing to reconcile", resource_id)
            return Result()
        except Exception as err:
            raise ReconcileError(
                Origin.LOCAL, ERR_GET_INSTANCE, err, requeue_after=self._waits.short
            ) from err

        remote: Resource | None = None
        try:
            remote = await self._call(self._remote.get(resource_id))
        except ObjectNotFoundError:
            _LOGGER.debug("Remote counterpart of %s does not exist", resource_id)
        except Exception as err:
            return await self._fail(
                local, ReconcileError(Origin.REMOTE, ERR_GET_INSTANCE, err)
            )

        if local.is_deleted():
            return await self._finalize(local, remote)

        try:
            await self._call(self._finalizer.add_finalizer(local))
        except Exception as err:
            return await self._fail(
                local, ReconcileError(Origin.LOCAL, ERR_ADD_FINALIZER, err)
            )

        if remote is None:
            remote = Resource.new(self._config.gvk, local.name, local.namespace)
        try:
            await self._call(self._propagator.propagate(local, remote))
        except Exception as err:
            return await self._fail(
                local, ReconcileError(Origin.PROPAGATION, ERR_PUSH, err)
            )

        _LOGGER.info("%s is in sync with the remote cluster", resource_id)
        return await self._write_status(local, agent_sync_success(), self._waits.long)

    async def _finalize(self, local: Resource, remote: Resource | None) -> Result:
        """Drive the deletion of the remote claim before releasing the local one."""
        if remote is None:
            try:
                await self._call(self._finalizer.remove_finalizer(local))
            except Exception as err:
                return await self._fail(
                    local, ReconcileError(Origin.LOCAL, ERR_REMOVE_FINALIZER, err)
                )
            _LOGGER.info(
                "Remote counterpart of %s is gone, released the local claim",
                local.resource_id,
            )
            return Result()

        try:
            await self._call(self._remote.delete(remote))
        except Exception as err:
            if ignore_not_found(err) is not None:
                return await self._fail(
                    local, ReconcileError(Origin.REMOTE, ERR_DELETE_INSTANCE, err)
                )
        _LOGGER.info("Requested deletion of remote %s", remote.resource_id)
        return await self._write_status(
            local,
            agent_sync_success().with_message(MSG_DELETION_REQUESTED),
            self._waits.tiny,
        )

    async def _fail(self, local: Resource, err: ReconcileError) -> Result:
        _LOGGER.warning("Failed to sync %s: %s", local.resource_id, err)
        return await self._write_status(
            local, agent_sync_error(err), self._waits.short
        )

    async def _write_status(
        self, local: Resource, cond: Condition, requeue_after: timedelta
    ) -> Result:
        local.status.conditions = set_condition(local.status.conditions, cond)
        try:
            await self._call(self._local.update_status(local))
        except Exception as err:
            raise ReconcileError(
                Origin.LOCAL, ERR_UPDATE_STATUS, err, requeue_after=requeue_after
            ) from err
        return Result(requeue_after=requeue_after)

    async def _call(self, aw: Awaitable[T]) -> T:
        return await call(aw, self._config.call_timeout)
