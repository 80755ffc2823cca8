"""
Tool Registry: the fixed catalogue of tools the server exposes.

Each tool is described once, at import time, by a ToolDescriptor:

    ToolDescriptor(
        name="get_store",
        description="Get a Discord Flux store by name",
        input_schema={
            "type": "object",
            "properties": {"storeName": {"type": "string", ...}},
            "required": ["storeName"],
        },
    )

The registry only describes tools. Running them is the job of the
execution context on the other side of the ToolBridge.

The catalogue below is part of the wire contract: existing callers
depend on the exact names, descriptions and schemas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping


@dataclass(frozen=True)
class ToolDescriptor:
    """A named, schema-described tool."""
    name: str
    description: str
    input_schema: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Return the descriptor as sent in a tools/list response."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": _plain(self.input_schema),
        }


class ToolRegistry:
    """
    Ordered, read-only collection of ToolDescriptors.

    Order is declaration order and only affects tools/list output.
    Nothing mutates the registry after construction, so it can be
    shared between connections without locking.
    """

    def __init__(self, descriptors: Iterable[ToolDescriptor]):
        ordered = tuple(descriptors)
        by_name: dict[str, ToolDescriptor] = {}
        for descriptor in ordered:
            if not descriptor.name:
                raise ValueError("Tool descriptor has no name")
            if descriptor.name in by_name:
                raise ValueError(f"Duplicate tool name: '{descriptor.name}'")
            by_name[descriptor.name] = descriptor
        self._ordered = ordered
        self._by_name = MappingProxyType(by_name)

    def list(self) -> list[ToolDescriptor]:
        return list(self._ordered)

    def exists(self, name: str) -> bool:
        return name in self._by_name

    def get(self, name: str) -> ToolDescriptor | None:
        return self._by_name.get(name)

    def names(self) -> list[str]:
        return [d.name for d in self._ordered]

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._ordered)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def _plain(value: Any) -> Any:
    """Deep-copy a schema into plain dicts/lists so callers can't mutate ours."""
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ============================================================
# BUILT-IN CATALOGUE
# ============================================================

BUILTIN_TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="evaluate_javascript",
        description="Execute JavaScript code in Discord's context",
        input_schema={
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "JavaScript code to execute",
                },
            },
            "required": ["code"],
        },
    ),
    ToolDescriptor(
        name="get_store",
        description="Get a Discord Flux store by name",
        input_schema={
            "type": "object",
            "properties": {
                "storeName": {
                    "type": "string",
                    "description": "Name of the store (e.g., 'UserStore', 'GuildStore')",
                },
            },
            "required": ["storeName"],
        },
    ),
    ToolDescriptor(
        name="get_store_method",
        description="Call a method on a Discord store",
        input_schema={
            "type": "object",
            "properties": {
                "storeName": {
                    "type": "string",
                    "description": "Name of the store",
                },
                "methodName": {
                    "type": "string",
                    "description": "Name of the method to call",
                },
                "args": {
                    "type": "array",
                    "description": "Arguments to pass to the method",
                    "items": {},
                },
            },
            "required": ["storeName", "methodName"],
        },
    ),
    ToolDescriptor(
        name="find_webpack_module",
        description="Find a webpack module by props or code",
        input_schema={
            "type": "object",
            "properties": {
                "props": {
                    "type": "array",
                    "description": "Property names to search for",
                    "items": {"type": "string"},
                },
                "code": {
                    "type": "string",
                    "description": "Code string to search for",
                },
            },
        },
    ),
    ToolDescriptor(
        name="find_variable",
        description=(
            "Recursively search for a variable name (case-insensitive partial match) "
            "in document.*"
        ),
        input_schema={
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Part of variable name to search for (case-insensitive)",
                },
                "maxDepth": {
                    "type": "number",
                    "description": "Maximum recursion depth (default: 5)",
                    "default": 5,
                },
            },
            "required": ["name"],
        },
    ),
    ToolDescriptor(
        name="inspect_element",
        description=(
            "Inspect a DOM element using a CSS selector (like querySelector) and return "
            "detailed metadata including XPath, attributes, children, parents, computed "
            "styles, and position information"
        ),
        input_schema={
            "type": "object",
            "properties": {
                "selector": {
                    "type": "string",
                    "description": (
                        "CSS selector string to find the element "
                        "(e.g., '#myId', '.myClass', 'div > button', etc.)"
                    ),
                },
            },
            "required": ["selector"],
        },
    ),
)


def default_registry() -> ToolRegistry:
    """Registry over the built-in catalogue."""
    return ToolRegistry(BUILTIN_TOOLS)
