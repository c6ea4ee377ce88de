"""In-memory model of an inspected page: element tree, listeners and geometry."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable

import lxml.html

from pagecapture.constants import (
    CURSOR_DEFAULT,
    INSTRUMENTATION_IDS,
    OVERLAY_KEY_ATTR,
)


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float


class StaticGeometry:
    """Fixed boxes per element; elements without an entry get an empty box."""

    def __init__(
        self,
        boxes: dict[Any, Box] | None = None,
        scroll: tuple[float, float] = (0.0, 0.0),
    ) -> None:
        self.boxes = dict(boxes or {})
        self.scroll = scroll

    def bounding_box(self, node: Any) -> Box:
        return self.boxes.get(node, Box(0.0, 0.0, 0.0, 0.0))

    def scroll_offset(self) -> tuple[float, float]:
        return self.scroll


@dataclass
class InputEvent:
    kind: str
    target: Any = None
    key: str = ""
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


Listener = Callable[[InputEvent], None]


class PageDocument:
    """Element tree of one page plus the listener registry events go through.

    Capture-phase listeners always run first. Non-capture listeners stand for
    the page's own handlers and are skipped once propagation was stopped.
    Registering the same handler twice registers it twice.
    """

    def __init__(self, root: Any, *, url: str, geometry: Any | None = None) -> None:
        self.root = root
        self.url = url
        self.geometry = geometry if geometry is not None else StaticGeometry()
        self.cursor = CURSOR_DEFAULT
        self._listeners: list[tuple[str, Listener, bool]] = []

    @classmethod
    def from_html(cls, html: str, *, url: str, geometry: Any | None = None) -> "PageDocument":
        return cls(lxml.html.document_fromstring(html), url=url, geometry=geometry)

    @property
    def head(self) -> Any:
        head = self.root.find("head")
        if head is None:
            head = lxml.html.Element("head")
            self.root.insert(0, head)
        return head

    @property
    def body(self) -> Any:
        body = self.root.find("body")
        if body is None:
            body = lxml.html.Element("body")
            self.root.append(body)
        return body

    def add_event_listener(self, kind: str, handler: Listener, *, capture: bool = False) -> None:
        self._listeners.append((kind, handler, capture))

    def remove_event_listener(self, kind: str, handler: Listener, *, capture: bool = False) -> None:
        for idx, entry in enumerate(self._listeners):
            if entry == (kind, handler, capture):
                del self._listeners[idx]
                return

    def listener_count(self, kind: str | None = None) -> int:
        if kind is None:
            return len(self._listeners)
        return sum(1 for entry in self._listeners if entry[0] == kind)

    def dispatch(self, event: InputEvent) -> InputEvent:
        listeners = list(self._listeners)
        for kind, handler, capture in listeners:
            if capture and kind == event.kind:
                handler(event)
        if event.propagation_stopped:
            return event
        for kind, handler, capture in listeners:
            if not capture and kind == event.kind:
                handler(event)
        return event

    def bounding_box(self, node: Any) -> Box:
        return self.geometry.bounding_box(node)

    def scroll_offset(self) -> tuple[float, float]:
        return self.geometry.scroll_offset()

    def is_instrumentation(self, node: Any) -> bool:
        current = node
        while current is not None:
            if is_instrumentation_node(current):
                return True
            current = current.getparent()
        return False

    def instrumentation_nodes(self) -> list[Any]:
        return [el for el in self.root.iter() if _is_element(el) and is_instrumentation_node(el)]

    def refresh(self, html: str, *, url: str | None = None) -> None:
        """Swap in a fresh snapshot of the page, keeping existing overlays."""
        carried = self.instrumentation_nodes()
        new_root = lxml.html.document_fromstring(html)
        stale = [el for el in new_root.iter() if _is_element(el) and is_instrumentation_node(el)]
        for el in stale:
            if el.getparent() is not None:
                el.drop_tree()
        self.root = new_root
        if url is not None:
            self.url = url
        for el in carried:
            if el.tag == "style":
                self.head.append(el)
            else:
                self.body.append(el)


def element_children(node: Any) -> list[Any]:
    return [child for child in node if _is_element(child)]


def index_path(node: Any) -> list[int]:
    """Element-child indices leading from the root element down to ``node``."""
    out: list[int] = []
    current = node
    parent = current.getparent()
    while parent is not None:
        out.insert(0, element_children(parent).index(current))
        current = parent
        parent = current.getparent()
    return out


def resolve_index_path(root: Any, path: list[int]) -> Any | None:
    current = root
    for idx in path:
        children = element_children(current)
        if idx < 0 or idx >= len(children):
            return None
        current = children[idx]
    return current


def strip_instrumentation(node: Any) -> Any:
    """Detached copy of ``node`` without overlay or style instrumentation."""
    clone = copy.deepcopy(node)
    clone.tail = None
    for el in [e for e in clone.iterdescendants() if _is_element(e) and is_instrumentation_node(e)]:
        if el.getparent() is not None:
            el.drop_tree()
    return clone


def class_tokens(node: Any) -> list[str]:
    return str(node.get("class") or "").split()


def _is_element(node: Any) -> bool:
    return isinstance(node.tag, str)


def is_instrumentation_node(node: Any) -> bool:
    if node.get(OVERLAY_KEY_ATTR) is not None:
        return True
    return str(node.get("id") or "") in INSTRUMENTATION_IDS
