"""Channel clear operation states and response shapes."""

from enum import Enum
from typing import Any


class ClearState(str, Enum):
    """Lifecycle of a channel clear request."""

    REQUESTED = "requested"  # DELETE not yet answered
    PENDING = "pending"  # 202 Accepted, polling not started
    POLLING = "polling"  # Waiting for the channel to become empty
    COMPLETED = "completed"  # Channel is empty
    TIMED_OUT = "timed_out"  # 202 Accepted and the caller chose not to wait
    FAILED = "failed"  # DELETE or status check failed, or polling was cancelled

    @property
    def is_terminal(self) -> bool:
        return self in (ClearState.COMPLETED, ClearState.TIMED_OUT, ClearState.FAILED)


def completed_response(body: Any) -> dict[str, Any]:
    """
    Mark a clear-channel response body as complete.

    The server's deletion counters stay where the server put them (``meta``);
    only ``clearComplete`` is added.
    """
    response = dict(body) if isinstance(body, dict) else {}
    response["clearComplete"] = True
    return response


def pending_response(body: Any, timeout_ms: int) -> dict[str, Any]:
    """Response returned when a 202 clear is not waited for."""
    response = dict(body) if isinstance(body, dict) else {}
    meta = dict(response.get("meta") or {})
    meta["timeout"] = timeout_ms
    response["meta"] = meta
    response["clearComplete"] = False
    return response
