"""
The store module defines how the agent talks to the object store of a cluster.

- Uses NamedResource as the key for all objects.
- A Client reads and writes objects of one cluster; the agent holds one for the
  local cluster and one for the remote cluster.
- An Applicator writes the desired state of an object with upsert semantics.

The in-memory implementation follows the same life-cycle rules as an API server
(finalizers, deletion timestamps) and is used to run the reconcilers without a
live cluster.
"""

from .client import Client, Applicator, ApplyFn, StoreEvent
from .in_memory import InMemoryClient

__all__ = [
    "Client",
    "Applicator",
    "ApplyFn",
    "StoreEvent",
    "InMemoryClient",
]
