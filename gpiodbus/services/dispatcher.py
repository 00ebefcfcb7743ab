"""Method-call dispatch for objects exported by the daemon."""

from __future__ import annotations

import logging

from dbus_fast import Message, MessageType, Variant

from ..const import (
    ERROR_GPIO_FAILED,
    ERROR_INVALID_ARGS,
    ERROR_PROPERTY_READ_ONLY,
    ERROR_UNKNOWN_INTERFACE,
    ERROR_UNKNOWN_METHOD,
    ERROR_UNKNOWN_OBJECT,
    ERROR_UNKNOWN_PROPERTY,
    INTROSPECTABLE_INTERFACE,
    PROPERTIES_INTERFACE,
)
from ..errors import GpioError
from ..protocol.structures import (
    MethodCallError,
    MethodCallReply,
    MethodCallRequest,
    MethodCallResult,
)
from .objects import BusObject
from .registry import ObjectRegistry

logger = logging.getLogger("gpiodbus.dispatcher")


class BusDispatcher:
    """Resolve method calls against the routing table.

    ``dispatch`` always yields exactly one ``MethodCallReply`` or one
    ``MethodCallError``; ``handle_message`` adapts it to the dbus-fast
    message-handler contract.
    """

    def __init__(self, registry: ObjectRegistry) -> None:
        self.registry = registry

    def handle_message(self, message: Message) -> Message | None:
        """dbus-fast message handler; returns the reply to send, if any."""
        if message.message_type is not MessageType.METHOD_CALL:
            return None
        if not self.registry.owns(message.path):
            # Peer/ping and anything outside the object root stay with the library.
            return None

        logger.debug(
            "DBus method call %s.%s on %s from %s",
            message.interface,
            message.member,
            message.path,
            message.sender,
        )
        request = MethodCallRequest(
            sender=message.sender,
            object_path=message.path,
            interface_name=message.interface,
            method_name=message.member,
            signature=message.signature or "",
            parameters=tuple(message.body or ()),
        )
        result = self.dispatch(request)
        if isinstance(result, MethodCallError):
            return Message.new_error(message, result.error_name, result.message)
        return Message.new_method_return(message, result.signature, list(result.body))

    def dispatch(self, request: MethodCallRequest) -> MethodCallResult:
        obj = self.registry.get(request.object_path)
        if obj is None:
            return MethodCallError(ERROR_UNKNOWN_OBJECT, f"No such object path '{request.object_path}'")

        interface = request.interface_name
        if interface == INTROSPECTABLE_INTERFACE:
            return self._introspect(obj, request)
        if interface == PROPERTIES_INTERFACE:
            return self._properties(obj, request)
        if interface is not None and interface != obj.interface:
            return MethodCallError(
                ERROR_UNKNOWN_INTERFACE,
                f"Object '{obj.path}' does not implement interface '{interface}'",
            )

        spec = obj.methods().get(request.method_name)
        if spec is None:
            return MethodCallError(
                ERROR_UNKNOWN_METHOD,
                f"Unknown method '{request.method_name}' on interface '{obj.interface}'",
            )
        if request.signature != spec.in_signature:
            return MethodCallError(
                ERROR_INVALID_ARGS,
                f"Method '{request.method_name}' expects signature '{spec.in_signature}', "
                f"got '{request.signature}'",
            )

        try:
            body = spec.handler(*request.parameters)
        except GpioError as exc:
            logger.warning("%s.%s on %s failed: %s", obj.interface, request.method_name, obj.path, exc)
            return MethodCallError(ERROR_GPIO_FAILED, str(exc))
        except (TypeError, ValueError) as exc:
            return MethodCallError(ERROR_INVALID_ARGS, str(exc))
        return MethodCallReply(spec.out_signature, tuple(body))

    def _introspect(self, obj: BusObject, request: MethodCallRequest) -> MethodCallResult:
        if request.method_name != "Introspect" or request.signature:
            return MethodCallError(ERROR_UNKNOWN_METHOD, f"Unknown method '{request.method_name}'")
        return MethodCallReply("s", (obj.introspect(self.registry.children(obj.path)),))

    def _properties(self, obj: BusObject, request: MethodCallRequest) -> MethodCallResult:
        method = request.method_name
        params = request.parameters
        if method == "Get" and request.signature == "ss":
            interface, name = params
            prop = obj.properties().get(name) if interface in (obj.interface, "") else None
            if prop is None:
                return MethodCallError(ERROR_UNKNOWN_PROPERTY, f"No such property '{interface}.{name}'")
            try:
                return MethodCallReply("v", (Variant(prop.signature, prop.getter()),))
            except GpioError as exc:
                return MethodCallError(ERROR_GPIO_FAILED, str(exc))
        if method == "GetAll" and request.signature == "s":
            (interface,) = params
            if interface not in (obj.interface, ""):
                return MethodCallReply("a{sv}", ({},))
            try:
                values = {name: Variant(prop.signature, prop.getter()) for name, prop in obj.properties().items()}
            except GpioError as exc:
                return MethodCallError(ERROR_GPIO_FAILED, str(exc))
            return MethodCallReply("a{sv}", (values,))
        if method == "Set" and request.signature == "ssv":
            interface, name, _value = params
            if interface in (obj.interface, "") and name in obj.properties():
                return MethodCallError(ERROR_PROPERTY_READ_ONLY, f"Property '{name}' is read-only")
            return MethodCallError(ERROR_UNKNOWN_PROPERTY, f"No such property '{interface}.{name}'")
        if method in ("Get", "GetAll", "Set"):
            return MethodCallError(ERROR_INVALID_ARGS, f"Invalid arguments for {PROPERTIES_INTERFACE}.{method}")
        return MethodCallError(ERROR_UNKNOWN_METHOD, f"Unknown method '{method}' on '{PROPERTIES_INTERFACE}'")


__all__ = ["BusDispatcher"]
