"""Configuration objects for cluster-agent."""

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import cast

import aiofiles

from .exceptions import InputException
from .manifest import BaseManifest, GroupVersionKind

__all__ = [
    "WaitTiers",
    "ClaimReconcilerConfig",
    "ExtensionReconcilerConfig",
    "AgentConfig",
    "read_config",
]

DEFAULT_FINALIZER = "agent.cluster-agent.io/remote-sync"


@dataclass
class WaitTiers(BaseManifest):
    """Requeue delays requested from the runtime, selected by outcome."""

    tiny: timedelta = timedelta(seconds=3)
    """Fast poll for transient states, e.g. a remote deletion landing."""

    short: timedelta = timedelta(seconds=30)
    """Backoff after a failure."""

    long: timedelta = timedelta(minutes=5)
    """Steady state interval once everything is in sync."""

    def __post_init__(self) -> None:
        if not timedelta(0) < self.tiny < self.short < self.long:
            raise InputException(
                f"Wait tiers must satisfy 0 < tiny < short < long: {self}"
            )


@dataclass
class ClaimReconcilerConfig(BaseManifest):
    """Configuration for a ClaimReconciler."""

    gvk: GroupVersionKind
    """The kind of claim synced by the reconciler."""

    waits: WaitTiers = field(default_factory=WaitTiers)

    finalizer_name: str = DEFAULT_FINALIZER
    """Finalizer that keeps a local claim around until the remote one is gone."""

    call_timeout: float | None = None
    """Seconds allowed for each individual call to a cluster, if bounded."""


@dataclass
class ExtensionReconcilerConfig(BaseManifest):
    """Configuration for an ExtensionReconciler."""

    crd_name: str
    """Name of the CustomResourceDefinition of the synced kind."""

    waits: WaitTiers = field(default_factory=WaitTiers)

    call_timeout: float | None = None
    """Seconds allowed for each individual call to a cluster, if bounded."""


@dataclass
class AgentConfig(BaseManifest):
    """Holds the configuration of all reconcilers run by an agent."""

    claims: list[ClaimReconcilerConfig] = field(default_factory=list)

    extensions: list[ExtensionReconcilerConfig] = field(default_factory=list)


async def read_config(config_path: Path) -> AgentConfig:
    """Return the contents of a serialized agent configuration file."""
    async with aiofiles.open(str(config_path)) as config_file:
        content = await config_file.read()
    if not content:
        raise InputException(f"Empty agent configuration file {config_path}")
    return cast(AgentConfig, AgentConfig.parse_yaml(content))
