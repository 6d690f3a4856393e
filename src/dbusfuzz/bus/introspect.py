"""Parse introspection XML and walk the object tree of a bus name."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, Protocol

from dbusfuzz.core.exceptions import BusConnectionError, IntrospectionError
from dbusfuzz.core.schema import InterfaceInfo, MethodInfo, NodeInfo

log = logging.getLogger(__name__)


class Introspector(Protocol):
    def introspect(self, bus_name: str, object_path: str) -> str: ...


def parse_node(xml: str) -> NodeInfo:
    """Parse one ``<node>`` document into interfaces, methods and child names."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise IntrospectionError(f"Malformed introspection data: {e}") from e

    node = NodeInfo()
    for iface in root.findall("interface"):
        info = InterfaceInfo(name=iface.get("name", ""))
        for m in iface.findall("method"):
            method = MethodInfo(name=m.get("name", ""))
            for arg in m.findall("arg"):
                sig = arg.get("type", "")
                # "in" is the default direction for method args
                if arg.get("direction", "in") == "out":
                    method.out_signatures.append(sig)
                else:
                    method.in_signatures.append(sig)
            info.methods.append(method)
        node.interfaces.append(info)
    node.children = [c.get("name", "") for c in root.findall("node") if c.get("name")]
    return node


def child_path(parent: str, name: str) -> str:
    if name.startswith("/"):
        return name
    return parent.rstrip("/") + "/" + name


def walk_objects(
    connection: Introspector,
    bus_name: str,
    root: str = "/",
    *,
    recursive: bool = True,
) -> Iterator[tuple[str, NodeInfo]]:
    """Yield ``(object_path, NodeInfo)`` depth first, starting at ``root``."""
    stack = [root]
    seen: set[str] = set()
    while stack:
        path = stack.pop()
        if path in seen:
            continue
        seen.add(path)
        try:
            node = parse_node(connection.introspect(bus_name, path))
        except (BusConnectionError, IntrospectionError) as e:
            if path == root:
                raise IntrospectionError(f"Cannot introspect {bus_name} {path}: {e}") from e
            log.warning("Skipping %s %s: %s", bus_name, path, e)
            continue
        yield path, node
        if recursive:
            stack.extend(child_path(path, c) for c in reversed(node.children))
