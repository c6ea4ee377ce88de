"""Hover and selection overlays drawn over elements of an inspected page."""

from __future__ import annotations

from typing import Any

import lxml.html

from pagecapture.constants import (
    HOVER_CLASS,
    OVERLAY_KEY_ATTR,
    OVERLAY_STYLE,
    SELECTED_CLASS,
    STYLE_ELEMENT_ID,
)
from pagecapture.dom import PageDocument


class OverlayHandle:
    def __init__(self, controller: "HighlightController", element: Any, target: Any) -> None:
        self._controller = controller
        self.element = element
        self.target = target

    @property
    def attached(self) -> bool:
        return self.element.getparent() is not None

    def remove(self) -> None:
        self._controller.remove_selected(self)


class HighlightController:
    """Owns at most one hover overlay and any number of selection overlays.

    Overlays are absolutely positioned snapshots of the target's box plus the
    page scroll offset; they are not re-laid out when the page reflows.
    """

    def __init__(self, document: PageDocument) -> None:
        self.document = document
        self._hover: Any | None = None
        self._selected: list[OverlayHandle] = []
        self._next_key = 0

    @property
    def hover_overlay(self) -> Any | None:
        return self._hover

    @property
    def selected(self) -> list[OverlayHandle]:
        return list(self._selected)

    def ensure_style(self) -> None:
        for el in self.document.root.iter("style"):
            if str(el.get("id") or "") == STYLE_ELEMENT_ID:
                return
        style = lxml.html.Element("style")
        style.set("id", STYLE_ELEMENT_ID)
        style.text = OVERLAY_STYLE
        self.document.head.append(style)

    def show_hover(self, element: Any) -> Any:
        if self._hover is None:
            self.ensure_style()
            self._hover = self._new_overlay(HOVER_CLASS)
        self._place(self._hover, element)
        return self._hover

    def hide_hover(self) -> None:
        if self._hover is None:
            return
        _update_style(self._hover, {"display": "none"})

    def remove_hover(self) -> None:
        if self._hover is None:
            return
        if self._hover.getparent() is not None:
            self._hover.drop_tree()
        self._hover = None

    def mark_selected(self, element: Any) -> OverlayHandle:
        self.ensure_style()
        overlay = self._new_overlay(SELECTED_CLASS)
        self._place(overlay, element)
        handle = OverlayHandle(self, overlay, element)
        self._selected.append(handle)
        return handle

    def remove_selected(self, handle: OverlayHandle) -> None:
        if handle in self._selected:
            self._selected.remove(handle)
        if handle.element.getparent() is not None:
            handle.element.drop_tree()

    def clear_all(self) -> None:
        self.remove_hover()
        for handle in list(self._selected):
            self.remove_selected(handle)

    def _new_overlay(self, class_name: str) -> Any:
        self._next_key += 1
        overlay = lxml.html.Element("div")
        overlay.set("class", class_name)
        overlay.set(OVERLAY_KEY_ATTR, str(self._next_key))
        self.document.body.append(overlay)
        return overlay

    def _place(self, overlay: Any, element: Any) -> None:
        box = self.document.bounding_box(element)
        scroll_x, scroll_y = self.document.scroll_offset()
        _update_style(
            overlay,
            {
                "top": _px(box.y + scroll_y),
                "left": _px(box.x + scroll_x),
                "width": _px(box.width),
                "height": _px(box.height),
                "display": "block",
            },
        )


def overlay_style(overlay: Any) -> dict[str, str]:
    out: dict[str, str] = {}
    for chunk in str(overlay.get("style") or "").split(";"):
        if ":" not in chunk:
            continue
        key, value = chunk.split(":", 1)
        if key.strip():
            out[key.strip()] = value.strip()
    return out


def _update_style(overlay: Any, values: dict[str, str]) -> None:
    style = overlay_style(overlay)
    style.update(values)
    overlay.set("style", "; ".join(f"{key}: {value}" for key, value in style.items()) + ";")


def _px(value: float) -> str:
    text = f"{float(value):.2f}".rstrip("0").rstrip(".")
    return f"{text or '0'}px"
