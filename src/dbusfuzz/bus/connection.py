"""Blocking D-Bus connection (jeepney) and interface proxies."""

from __future__ import annotations

import logging
import struct
from typing import Any

from jeepney import DBusAddress, HeaderFields, MessageType, new_method_call
from jeepney.io.blocking import open_dbus_connection

from dbusfuzz.core.exceptions import BusConnectionError
from dbusfuzz.core.schema import BusError, BusErrorKind, CallResult
from dbusfuzz.fuzz.payload import OwnedCall

log = logging.getLogger(__name__)

BUS_DAEMON = DBusAddress(
    "/org/freedesktop/DBus",
    bus_name="org.freedesktop.DBus",
    interface="org.freedesktop.DBus",
)
INTROSPECTABLE_INTERFACE = "org.freedesktop.DBus.Introspectable"
LOCAL_TIMEOUT_MESSAGE = "Timeout was reached"


def _result_from_reply(reply: Any) -> CallResult:
    """Turn a jeepney reply message into a CallResult."""
    fields = reply.header.fields
    signature = fields.get(HeaderFields.signature, "")
    if reply.header.message_type == MessageType.error:
        name = fields.get(HeaderFields.error_name, "")
        body = reply.body or ()
        message = body[0] if body and isinstance(body[0], str) else ""
        return CallResult(error=BusError.from_reply(name, message), signature=signature)
    return CallResult(body=tuple(reply.body or ()), signature=signature)


class BusConnection:
    """A blocking connection to the session or system bus."""

    def __init__(self, bus: str = "session", call_timeout: float | None = None) -> None:
        self._bus = bus
        self._call_timeout = call_timeout
        self._conn: Any = None

    def __enter__(self) -> BusConnection:
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def bus(self) -> str:
        return self._bus

    def open(self) -> None:
        if self._conn is not None:
            return
        try:
            self._conn = open_dbus_connection(bus=self._bus.upper(), enable_fds=True)
        except Exception as e:
            raise BusConnectionError(f"Could not connect to the {self._bus} bus: {e}") from e
        log.debug("Connected to the %s bus as %s", self._bus, getattr(self._conn, "unique_name", "?"))

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def send(self, message: Any) -> CallResult:
        """Send a method call and wait for its reply; remote errors are returned."""
        if self._conn is None:
            raise BusConnectionError("Connection is not open")
        try:
            reply = self._conn.send_and_get_reply(message, timeout=self._call_timeout)
        except TimeoutError:
            return CallResult(error=BusError(kind=BusErrorKind.TIMED_OUT, message=LOCAL_TIMEOUT_MESSAGE))
        except (TypeError, ValueError, struct.error) as e:
            raise BusConnectionError(f"Could not serialise message: {e}") from e
        except OSError as e:
            raise BusConnectionError(f"Bus connection failed: {e}") from e
        return _result_from_reply(reply)

    def _call_bus(self, method: str, signature: str | None = None, body: tuple = ()) -> tuple:
        result = self.send(new_method_call(BUS_DAEMON, method, signature, body))
        if result.error is not None:
            raise BusConnectionError(f"{method} failed: {result.error.name}: {result.error.message}")
        return result.body or ()

    def get_pid(self, bus_name: str) -> int:
        """PID of the process owning ``bus_name``."""
        return int(self._call_bus("GetConnectionUnixProcessID", "s", (bus_name,))[0])

    def list_names(self) -> list[str]:
        return sorted(self._call_bus("ListNames")[0])

    def introspect(self, bus_name: str, object_path: str) -> str:
        """Introspection XML of ``object_path``."""
        address = DBusAddress(object_path, bus_name=bus_name, interface=INTROSPECTABLE_INTERFACE)
        result = self.send(new_method_call(address, "Introspect"))
        if result.error is not None:
            raise BusConnectionError(
                f"Introspect of {object_path} failed: {result.error.name}: {result.error.message}"
            )
        return str((result.body or ("",))[0])

    def proxy(self, bus_name: str, object_path: str, interface: str) -> InterfaceProxy:
        return InterfaceProxy(self, bus_name, object_path, interface)


class InterfaceProxy:
    """MethodInvoker bound to one object and interface of a bus name."""

    def __init__(self, connection: BusConnection, bus_name: str, object_path: str, interface: str) -> None:
        self._connection = connection
        self.address = DBusAddress(object_path, bus_name=bus_name, interface=interface)

    def call(self, method: str, payload: OwnedCall) -> CallResult:
        message = new_method_call(self.address, method, payload.signature or None, payload.body)
        return self._connection.send(message)
