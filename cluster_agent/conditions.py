"""Conditions written by the agent to the status of the objects it syncs.

A single `AgentSynced` condition reports the outcome of the most recent
reconciliation of an object. It is replaced on every pass rather than appended
so the status of an object stays bounded.
"""

from datetime import datetime, UTC

from .manifest import Condition, CONDITION_TRUE, CONDITION_FALSE

__all__ = [
    "TYPE_AGENT_SYNCED",
    "REASON_AGENT_SYNC_SUCCESS",
    "REASON_AGENT_SYNC_ERROR",
    "agent_sync_success",
    "agent_sync_error",
    "get_condition",
    "set_condition",
]


TYPE_AGENT_SYNCED = "AgentSynced"
REASON_AGENT_SYNC_SUCCESS = "Success"
REASON_AGENT_SYNC_ERROR = "Error"


def _now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def agent_sync_success() -> Condition:
    """Condition indicating the object is in sync with its remote counterpart."""
    return Condition(
        type=TYPE_AGENT_SYNCED,
        status=CONDITION_TRUE,
        reason=REASON_AGENT_SYNC_SUCCESS,
        last_transition_time=_now(),
    )


def agent_sync_error(err: BaseException) -> Condition:
    """Condition indicating the last sync attempt of the object failed."""
    return Condition(
        type=TYPE_AGENT_SYNCED,
        status=CONDITION_FALSE,
        reason=REASON_AGENT_SYNC_ERROR,
        message=str(err),
        last_transition_time=_now(),
    )


def get_condition(conditions: list[Condition], cond_type: str) -> Condition | None:
    """Return the condition of the given type, if present."""
    for cond in conditions:
        if cond.type == cond_type:
            return cond
    return None


def set_condition(conditions: list[Condition], new: Condition) -> list[Condition]:
    """Return a new list of conditions with `new` replacing any of the same type.

    The transition time of the existing condition is kept when the status did
    not change, since the condition did not actually transition.
    """
    result: list[Condition] = []
    replaced = False
    for cond in conditions:
        if cond.type != new.type:
            result.append(cond)
            continue
        if replaced:
            continue
        if cond.status == new.status and cond.last_transition_time is not None:
            new = Condition(
                type=new.type,
                status=new.status,
                reason=new.reason,
                message=new.message,
                last_transition_time=cond.last_transition_time,
            )
        result.append(new)
        replaced = True
    if not replaced:
        result.append(new)
    return result
