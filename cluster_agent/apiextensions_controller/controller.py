"""
Extension Controller implementation.

This controller syncs instances of an API extension kind (a kind served
through a CustomResourceDefinition) from the remote cluster, which is
authoritative for them, into the local cluster.

Key Concepts:
    - CustomResourceDefinition: Must be established in the local cluster
      before any instance of its kind can be written there.
    - InstanceSet: Makes listing and creating instances generic over the kind.
    - Garbage collection: Local instances with no remote counterpart of the
      same name are deleted.

Only the instance named by the request has its content synced by a pass, the
remaining instances are only compared by name. Every pass lists both clusters
again, so nothing is cached between passes.
"""

from collections.abc import Awaitable
import logging
from typing import TypeVar

from cluster_agent.config import ExtensionReconcilerConfig
from cluster_agent.exceptions import ObjectNotFoundError, Origin, ReconcileError
from cluster_agent.manifest import (
    NamedResource,
    Resource,
    crd_resource_id,
    is_established,
    sanitized_copy,
)
from cluster_agent.reconcile import Request, Result, call, ignore_not_found
from cluster_agent.store import Applicator, Client

from .instance_set import InstanceSet

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ERR_GET_CRD = "get custom resource definition failed"
ERR_FMT_GET_INSTANCE = "get instance of {} failed"
ERR_FMT_APPLY_INSTANCE = "apply instance of {} failed"
ERR_FMT_LIST_INSTANCE = "list instances of {} failed"
ERR_FMT_DELETE_INSTANCE = "delete instance of {} failed"


class ExtensionReconciler:
    """
    Reconciler for the instances of a single extension kind.

    The kind is described by the InstanceSet and the name of its
    CustomResourceDefinition in the configuration.
    """

    def __init__(
        self,
        local: Client,
        remote: Client,
        applicator: Applicator,
        instances: InstanceSet,
        config: ExtensionReconcilerConfig,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            local: Client of the local cluster that receives the instances
            remote: Client of the remote cluster that owns the instances
            applicator: Applicator writing instances to the local cluster
            instances: Strategy for listing and creating instances of the kind
            config: The configuration for the reconciler
        """
        self._local = local
        self._remote = remote
        self._applicator = applicator
        self._instances = instances
        self._config = config
        self._waits = config.waits

    async def reconcile(self, request: Request) -> Result:
        """
        Reconcile the instances of the kind, triggered for one instance.

        This method performs the following steps:
        1. Waits for the CustomResourceDefinition to be established locally.
        2. Applies the remote state of the requested instance locally.
        3. Deletes local instances that no longer exist in the remote cluster.

        Raises:
            ReconcileError: If any call to a cluster failed. The error names
                the cluster the failure originated from.
        """
        crd_name = self._config.crd_name
        _LOGGER.info("Reconciling %s instance %s", crd_name, request)
        try:
            crd = await self._call(self._local.get(crd_resource_id(crd_name)))
        except ObjectNotFoundError:
            _LOGGER.debug("CustomResourceDefinition %s does not exist yet", crd_name)
            return Result(requeue_after=self._waits.tiny)
        except Exception as err:
            raise self._error(Origin.LOCAL, ERR_GET_CRD, err) from err

        if not is_established(crd):
            _LOGGER.debug("CustomResourceDefinition %s is not established", crd_name)
            return Result(requeue_after=self._waits.tiny)

        instance_id = NamedResource(
            kind=self._instances.new_instance().kind,
            namespace=request.namespace,
            name=request.name,
        )
        remote_instance: Resource | None = None
        try:
            remote_instance = await self._call(self._remote.get(instance_id))
        except ObjectNotFoundError:
            _LOGGER.debug("%s no longer exists in the remote cluster", instance_id)
        except Exception as err:
            raise self._error(
                Origin.REMOTE, ERR_FMT_GET_INSTANCE.format(crd_name), err
            ) from err

        if remote_instance is not None:
            try:
                await self._call(
                    self._applicator.apply(self._desired_instance(remote_instance))
                )
            except Exception as err:
                raise self._error(
                    Origin.LOCAL, ERR_FMT_APPLY_INSTANCE.format(crd_name), err
                ) from err

        try:
            local_list = await self._call(
                self._local.list_objects(self._instances.new_list())
            )
        except Exception as err:
            raise self._error(
                Origin.LOCAL, ERR_FMT_LIST_INSTANCE.format(crd_name), err
            ) from err
        try:
            remote_list = await self._call(
                self._remote.list_objects(self._instances.new_list())
            )
        except Exception as err:
            raise self._error(
                Origin.REMOTE, ERR_FMT_LIST_INSTANCE.format(crd_name), err
            ) from err

        for orphan in orphaned_instances(
            self._instances.get_items(local_list),
            self._instances.get_items(remote_list),
        ):
            try:
                await self._call(self._local.delete(orphan))
            except Exception as err:
                if ignore_not_found(err) is not None:
                    raise self._error(
                        Origin.LOCAL, ERR_FMT_DELETE_INSTANCE.format(crd_name), err
                    ) from err
            _LOGGER.info(
                "Deleted %s, it no longer exists in the remote cluster",
                orphan.resource_id,
            )

        return Result(requeue_after=self._waits.long)

    def _desired_instance(self, remote_instance: Resource) -> Resource:
        """Return the local instance reflecting the state of the remote one."""
        source = sanitized_copy(remote_instance)
        desired = self._instances.new_instance()
        desired.metadata = source.metadata
        desired.spec = source.spec
        return desired

    def _error(
        self, origin: Origin, message: str, err: Exception
    ) -> ReconcileError:
        return ReconcileError(origin, message, err, requeue_after=self._waits.short)

    async def _call(self, aw: Awaitable[T]) -> T:
        return await call(aw, self._config.call_timeout)


def orphaned_instances(local: list[Resource], remote: list[Resource]) -> list[Resource]:
    """Return the local instances without a remote instance of the same name.

    Instances are identified by name only.
    """
    remote_names = {instance.name for instance in remote}
    return [instance for instance in local if instance.name not in remote_names]
