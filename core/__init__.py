"""
ClearCause - Core

Cross-cutting pieces shared by services and the API:
errors, input validation and the in-process event bus.
"""

from .errors import ErrorCode, PlatformError, handle_db_error, with_error_handling
from .event_bus import EventBus, event_bus

__all__ = [
    "ErrorCode",
    "PlatformError",
    "handle_db_error",
    "with_error_handling",
    "EventBus",
    "event_bus",
]
