"""The claim controller module.

This module provides a reconciler that syncs claims of the local cluster to
their counterparts in the remote cluster.
"""

from .controller import ClaimReconciler
from .propagator import Propagator, PropagateFn, APIPropagator

__all__ = [
    "ClaimReconciler",
    "Propagator",
    "PropagateFn",
    "APIPropagator",
]
