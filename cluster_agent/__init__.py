"""
cluster-agent keeps objects of a local (management) cluster in sync with their
counterparts in a remote (target) cluster.

The library provides two reconcilers, meant to be driven by a controller
runtime that invokes them on watch events and after the delay they request:

- `claim_controller.ClaimReconciler` pushes the desired state of local claims
  to the remote cluster, mirrors status back and drives remote deletion.
- `apiextensions_controller.ExtensionReconciler` syncs instances of an
  extension kind from the remote cluster and garbage collects local orphans.
"""

__all__ = [
    "manifest",
    "conditions",
    "config",
    "exceptions",
    "finalizer",
    "reconcile",
    "store",
    "claim_controller",
    "apiextensions_controller",
]
