"""The API extensions controller module.

This module provides a reconciler that syncs the instances of an extension
kind from the remote cluster into the local cluster, once its
CustomResourceDefinition is established.
"""

from .controller import ExtensionReconciler, orphaned_instances
from .instance_set import InstanceSet, InstanceSetFns, KindInstanceSet

__all__ = [
    "ExtensionReconciler",
    "orphaned_instances",
    "InstanceSet",
    "InstanceSetFns",
    "KindInstanceSet",
]
