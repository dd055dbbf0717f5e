"""Application services."""

from .dispatch import (
    AssignmentResult,
    DispatchEngine,
    get_dispatch_engine,
    get_queue_view,
    reset_dispatch_state,
)
from .queue_view import QueueView

__all__ = [
    "AssignmentResult",
    "DispatchEngine",
    "QueueView",
    "get_dispatch_engine",
    "get_queue_view",
    "reset_dispatch_state",
]
