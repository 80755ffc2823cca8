"""
Python host: reference execution context for the built-in catalogue.

Exposes the state of the Python process it runs in:

    evaluate_javascript  runs the code as the body of an async function
                         in the host namespace (this host's scripting
                         language is Python)
    get_store            looks up a named store object
    get_store_method     calls a method on a named store
    find_webpack_module  finds a loaded module exposing all given props
    find_variable        case-insensitive search of attribute/key names
    inspect_element      inspects an element of the host's XML document

Launch:
    python -m inspector_mcp.hosts.python_host [--document page.xml]

Test manually:
    echo '{"id":1,"tool":"get_store","arguments":{"storeName":"ProcessStore"}}' | python -m inspector_mcp.hosts.python_host
"""

from __future__ import annotations

import argparse
import inspect
import logging
import os
import re
import sys
import textwrap
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any

from inspector_mcp.host import HostEndpoint, HostToolHandler, serve_stdio

logger = logging.getLogger(__name__)

MAX_MATCHES = 100
MAX_CHILDREN = 50
MAX_TEXT = 200
MAX_HTML = 500


@dataclass
class HostState:
    """Everything the tools can see."""
    namespace: dict[str, Any] = field(default_factory=dict)
    stores: dict[str, Any] = field(default_factory=dict)
    document: ET.Element | None = None
    root: Any = None

    def search_root(self) -> Any:
        if self.root is not None:
            return self.root
        return self.document if self.document is not None else self.namespace


def _jsonable(value: Any, depth: int = 0) -> Any:
    """Best-effort conversion of a host value into something JSON can carry."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if depth >= 6:
        return repr(value)[:MAX_TEXT]
    if isinstance(value, dict):
        return {str(k): _jsonable(v, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v, depth + 1) for v in value]
    return repr(value)[:MAX_TEXT]


def _require_string(arguments: dict, key: str, message: str | None = None) -> str:
    value = arguments.get(key)
    if not value or not isinstance(value, str):
        raise ValueError(message or f"{key} parameter is required and must be a string")
    return value


# ============================================================
# TOOLS
# ============================================================

class EvaluateCodeTool(HostToolHandler):
    name = "evaluate_javascript"

    def __init__(self, state: HostState):
        self.state = state

    async def handle(self, arguments: dict) -> Any:
        code = _require_string(arguments, "code")

        source = "async def __inspector_eval__():\n" + textwrap.indent(code, "    ") + "\n    return None\n"
        scope = self.state.namespace
        exec(compile(source, "<evaluate>", "exec"), scope)
        try:
            function = scope["__inspector_eval__"]
        finally:
            scope.pop("__inspector_eval__", None)
        return _jsonable(await function())


class GetStoreTool(HostToolHandler):
    name = "get_store"

    def __init__(self, state: HostState):
        self.state = state

    def handle(self, arguments: dict) -> dict:
        store_name = _require_string(arguments, "storeName")
        if store_name not in self.state.stores:
            raise LookupError(f"Store '{store_name}' not found")

        store = self.state.stores[store_name]
        methods = sorted(
            attr for attr in dir(store)
            if not attr.startswith("_") and callable(getattr(store, attr, None))
        )
        return {
            "name": store_name,
            "available": True,
            "methods": methods,
            "note": "Use get_store_method to call specific methods on the store",
        }


class GetStoreMethodTool(HostToolHandler):
    name = "get_store_method"

    def __init__(self, state: HostState):
        self.state = state

    async def handle(self, arguments: dict) -> Any:
        store_name = _require_string(arguments, "storeName", "storeName parameter is required")
        method_name = _require_string(arguments, "methodName", "methodName parameter is required")
        method_args = arguments.get("args") or []
        if not isinstance(method_args, list):
            raise ValueError("args must be an array")

        try:
            if store_name not in self.state.stores:
                raise LookupError(f"Store '{store_name}' not found")
            method = getattr(self.state.stores[store_name], method_name, None)
            if not callable(method):
                raise AttributeError(f"Method '{method_name}' not found on store '{store_name}'")

            result = method(*method_args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            raise RuntimeError(f"Error calling {store_name}.{method_name}: {e}") from e
        return _jsonable(result)


def _exposes(module: Any, props: list) -> bool:
    try:
        return all(isinstance(p, str) and hasattr(module, p) for p in props)
    except Exception:
        # lazy modules can fail on attribute access
        return False


class FindModuleTool(HostToolHandler):
    name = "find_webpack_module"

    def handle(self, arguments: dict) -> dict:
        props = arguments.get("props")
        code = arguments.get("code")
        if not props and not code:
            raise ValueError("Either props or code parameter is required")

        if props and isinstance(props, list):
            for module_name, module in sorted(sys.modules.items()):
                if module is None:
                    continue
                if _exposes(module, props):
                    return {
                        "found": True,
                        "type": "props",
                        "props": props,
                        "module": module_name,
                        "note": "Module found. Use evaluate_javascript to access it.",
                    }
            return {"found": False, "type": "props", "props": props}

        return {
            "found": False,
            "type": "code",
            "note": "Code-based search requires more complex implementation. Use props search instead.",
        }


class FindVariableTool(HostToolHandler):
    name = "find_variable"

    def __init__(self, state: HostState):
        self.state = state

    def handle(self, arguments: dict) -> dict:
        name = _require_string(arguments, "name")
        max_depth = arguments.get("maxDepth", 5)
        if isinstance(max_depth, bool) or not isinstance(max_depth, (int, float)):
            max_depth = 5

        matches = find_names(self.state.search_root(), name, int(max_depth))
        result = {
            "searchTerm": name,
            "matches": matches[:MAX_MATCHES],
            "totalMatches": len(matches),
        }
        if len(matches) > MAX_MATCHES:
            result["note"] = f"Showing first {MAX_MATCHES} matches"
        return result


class InspectElementTool(HostToolHandler):
    name = "inspect_element"

    def __init__(self, state: HostState):
        self.state = state

    def handle(self, arguments: dict) -> dict:
        selector = _require_string(arguments, "selector")
        document = self.state.document
        if document is None:
            raise RuntimeError("No document loaded in this host")

        try:
            element = query_selector(document, selector)
        except Exception as e:
            raise ValueError(f"Error inspecting element with selector '{selector}': {e}") from e

        if element is None:
            return {
                "found": False,
                "selector": selector,
                "error": f"No element found matching selector: {selector}",
            }
        return {"found": True, "selector": selector, "element": describe_element(document, element)}


# ============================================================
# OBJECT GRAPH SEARCH
# ============================================================

def _children(obj: Any):
    """Yield (key, value) pairs of a container or object, skipping what can't be read."""
    if isinstance(obj, dict):
        yield from ((str(k), v) for k, v in list(obj.items()))
    elif isinstance(obj, (list, tuple)):
        yield from ((str(i), v) for i, v in enumerate(obj))
    elif isinstance(obj, ET.Element):
        yield from obj.attrib.items()
        yield from ((str(i), child) for i, child in enumerate(obj))
    else:
        attrs = getattr(obj, "__dict__", None)
        if isinstance(attrs, dict):
            yield from list(attrs.items())


def find_names(root: Any, name: str, max_depth: int = 5) -> list[dict]:
    """Collect every key/attribute whose name contains `name` (case-insensitive)."""
    term = name.lower()
    matches: list[dict] = []
    visited: set[int] = set()

    def search(obj: Any, path: str, depth: int) -> None:
        if depth > max_depth or obj is None or callable(obj):
            return
        if isinstance(obj, (str, bytes, int, float, bool)):
            return
        if id(obj) in visited:
            return
        visited.add(id(obj))

        for key, value in _children(obj):
            child_path = f"{path}.{key}" if path else key
            if term in key.lower():
                matches.append({"path": child_path, "value": _jsonable(value, depth=5)})
            if depth < max_depth and value is not None:
                search(value, child_path, depth + 1)

    search(root, "root", 0)
    return matches


# ============================================================
# DOCUMENT INSPECTION
# ============================================================

_ID_SELECTOR = re.compile(r"^#([\w-]+)$")
_CLASS_SELECTOR = re.compile(r"^\.([A-Za-z_-][\w-]*)$")
_TAG_SELECTOR = re.compile(r"^[A-Za-z][\w-]*$")


def query_selector(document: ET.Element, selector: str) -> ET.Element | None:
    """
    First element matching `selector`, in document order.

    Supports "#id", ".class", "tag" and any ElementTree path expression.
    An unparseable path raises whatever ElementTree raises for it.
    """
    selector = selector.strip()
    m = _ID_SELECTOR.match(selector)
    if m:
        return next((el for el in document.iter() if el.get("id") == m.group(1)), None)
    m = _CLASS_SELECTOR.match(selector)
    if m:
        return next((el for el in document.iter() if m.group(1) in el.get("class", "").split()), None)
    if _TAG_SELECTOR.match(selector):
        return next(document.iter(selector), None)
    return document.find(selector)


def xpath_of(document: ET.Element, element: ET.Element, parents: dict | None = None) -> str:
    if element.get("id"):
        return f'//*[@id="{element.get("id")}"]'

    parents = parents if parents is not None else _parent_map(document)
    parts: list[str] = []
    current: ET.Element | None = element
    while current is not None:
        parent = parents.get(current)
        index = 1
        if parent is not None:
            for sibling in parent:
                if sibling is current:
                    break
                if sibling.tag == current.tag:
                    index += 1
        parts.insert(0, f"{current.tag}[{index}]" if index > 1 else current.tag)
        current = parent
    return "/" + "/".join(parts)


def _parent_map(document: ET.Element) -> dict:
    return {child: parent for parent in document.iter() for child in parent}


def _summary(element: ET.Element) -> dict:
    return {
        "tagName": element.tag.lower(),
        "id": element.get("id") or None,
        "className": element.get("class") or None,
    }


def describe_element(document: ET.Element, element: ET.Element) -> dict:
    parents = _parent_map(document)
    parent = parents.get(element)
    children = list(element)
    text = "".join(element.itertext())
    inner = (element.text or "") + "".join(ET.tostring(c, encoding="unicode") for c in children)

    return {
        "tagName": element.tag.lower(),
        "xpath": xpath_of(document, element, parents),
        "id": element.get("id") or None,
        "className": element.get("class") or None,
        "textContent": text[:MAX_TEXT] or None,
        "innerHTML": inner[:MAX_HTML] or None,
        "attributes": dict(element.attrib),
        "parent": {**_summary(parent), "hasParent": True} if parent is not None else {"hasParent": False},
        "children": {
            "count": len(children),
            "childElementCount": len(children),
            "firstFew": [_summary(c) for c in children[:MAX_CHILDREN]],
            "hasMore": len(children) > MAX_CHILDREN,
        },
        "nodeName": element.tag.upper(),
    }


# ============================================================
# DEFAULT STORES
# ============================================================

class ProcessStore:
    """Facts about the host process."""

    def getPid(self) -> int:
        return os.getpid()

    def getArgv(self) -> list[str]:
        return list(sys.argv)

    def getCwd(self) -> str:
        return os.getcwd()

    def getEnv(self, name: str) -> str | None:
        return os.environ.get(name)


class ModuleStore:
    """Loaded Python modules."""

    def getModuleNames(self) -> list[str]:
        return sorted(sys.modules)

    def hasModule(self, name: str) -> bool:
        return name in sys.modules


def build_endpoint(state: HostState) -> HostEndpoint:
    endpoint = HostEndpoint()
    endpoint.register(EvaluateCodeTool(state))
    endpoint.register(GetStoreTool(state))
    endpoint.register(GetStoreMethodTool(state))
    endpoint.register(FindModuleTool())
    endpoint.register(FindVariableTool(state))
    endpoint.register(InspectElementTool(state))
    return endpoint


def default_state(document: ET.Element | None = None) -> HostState:
    state = HostState(
        stores={"ProcessStore": ProcessStore(), "ModuleStore": ModuleStore()},
        document=document if document is not None else ET.fromstring("<html><head/><body/></html>"),
    )
    state.namespace.update({"__name__": "__host__", "sys": sys, "os": os, "state": state})
    return state


def main() -> None:
    parser = argparse.ArgumentParser(description="Python host for the inspector MCP server.")
    parser.add_argument("--document", type=str, default=None, help="XML/XHTML document to expose to inspect_element")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")
    args = parser.parse_args()

    # stdout is the protocol channel; log to stderr only
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: [host] %(message)s",
    )

    document = ET.parse(args.document).getroot() if args.document else None
    serve_stdio(build_endpoint(default_state(document)))


if __name__ == "__main__":
    main()
