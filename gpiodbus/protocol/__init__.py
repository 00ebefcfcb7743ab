"""Message and event structures exchanged inside the daemon."""

from .structures import (
    BusNameState,
    DeviceAction,
    DeviceEvent,
    MethodCallError,
    MethodCallReply,
    MethodCallRequest,
    MethodCallResult,
    NameLostReason,
)

__all__ = [
    "BusNameState",
    "DeviceAction",
    "DeviceEvent",
    "MethodCallError",
    "MethodCallReply",
    "MethodCallRequest",
    "MethodCallResult",
    "NameLostReason",
]
