"""D-Bus access: connection, proxies, introspection."""

from dbusfuzz.bus.connection import BusConnection, InterfaceProxy
from dbusfuzz.bus.introspect import parse_node, walk_objects

__all__ = [
    "BusConnection",
    "InterfaceProxy",
    "parse_node",
    "walk_objects",
]
