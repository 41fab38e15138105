"""Exceptions related to cluster-agent."""

from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manifest import NamedResource

__all__ = [
    "AgentException",
    "InputException",
    "ObjectNotFoundError",
    "Origin",
    "ReconcileError",
]


class AgentException(Exception):
    """Generic base exception used for this library."""


class InputException(AgentException):
    """Raised when the input documents or config are not formatted as expected."""


class ObjectNotFoundError(AgentException):
    """Raised when an object is not found in the store."""

    def __init__(self, resource_id: "NamedResource") -> None:
        super().__init__(f"{resource_id} not found")
        self.resource_id = resource_id


class Origin(StrEnum):
    """The side of the sync that produced an error."""

    LOCAL = "local"
    REMOTE = "remote"
    PROPAGATION = "propagation"


class ReconcileError(AgentException):
    """An error tagged with the cluster (or step) it originated from.

    The string form mirrors how wrapped errors read in controller logs, e.g.
    `remote: get instance failed: boom`, so that the condition message written
    to the status of an object tells an operator where to look.
    """

    def __init__(
        self,
        origin: Origin,
        message: str,
        cause: BaseException | None = None,
        requeue_after: timedelta | None = None,
    ) -> None:
        self.origin = origin
        self.message = message
        self.cause = cause
        self.requeue_after = requeue_after
        text = f"{origin}: {message}"
        if cause is not None:
            text = f"{text}: {cause}"
        super().__init__(text)
