"""Playwright page helpers: event forwarding, DOM snapshots and overlay mirroring."""

from __future__ import annotations

import importlib.util
from typing import Any, Callable

from pagecapture.constants import (
    CURSOR_DEFAULT,
    HOVER_CLASS,
    LIVE_LAYER_ID,
    OVERLAY_KEY_ATTR,
    OVERLAY_STYLE,
    SELECTED_CLASS,
    STYLE_ELEMENT_ID,
)
from pagecapture.dom import Box, PageDocument, class_tokens, index_path

FORWARD_BINDING = "__pagecaptureForward"

FORWARDER_SCRIPT = r"""
(() => {
  if (window.__pagecaptureForwarderInstalled) return;
  window.__pagecaptureForwarderInstalled = true;
  window.__pagecaptureBlocking = false;
  const layerId = '__pagecapture_overlay_layer';
  const pathOf = (el) => {
    const out = [];
    let cur = el;
    while (cur && cur !== document.documentElement) {
      const parent = cur.parentElement;
      if (!parent) return null;
      out.unshift(Array.prototype.indexOf.call(parent.children, cur));
      cur = parent;
    }
    return cur ? out : null;
  };
  const send = (type, e) => {
    if (typeof window.__pagecaptureForward !== 'function') return;
    const target = e.target instanceof Element ? e.target : null;
    if (target && target.closest('#' + layerId)) return;
    window.__pagecaptureForward({ type, path: target ? pathOf(target) : null, key: e.key || '' });
  };
  document.addEventListener('mouseover', (e) => {
    if (window.__pagecaptureBlocking) send('pointermove', e);
  }, true);
  document.addEventListener('mouseout', (e) => {
    if (window.__pagecaptureBlocking) send('pointerleave', e);
  }, true);
  document.addEventListener('click', (e) => {
    if (!window.__pagecaptureBlocking) return;
    e.preventDefault();
    e.stopPropagation();
    send('click', e);
  }, true);
  document.addEventListener('keydown', (e) => send('keydown', e), true);
})();
"""

_MIRROR_SCRIPT = """
([styleId, layerId, keyAttr, css, cursor, blocking, items]) => {
  window.__pagecaptureBlocking = !!blocking;
  if (css && !document.getElementById(styleId)) {
    const style = document.createElement('style');
    style.id = styleId;
    style.textContent = css;
    (document.head || document.documentElement).appendChild(style);
  }
  let layer = document.getElementById(layerId);
  if (!layer) {
    layer = document.createElement('div');
    layer.id = layerId;
    layer.style.pointerEvents = 'none';
    document.documentElement.appendChild(layer);
  }
  const keep = new Set();
  for (const item of items) {
    keep.add(item.key);
    let el = Array.from(layer.children).find((c) => c.getAttribute(keyAttr) === item.key);
    if (!el) {
      el = document.createElement('div');
      el.setAttribute(keyAttr, item.key);
      layer.appendChild(el);
    }
    el.className = item.className;
    el.setAttribute('style', item.style);
  }
  Array.from(layer.children).forEach((el) => {
    if (!keep.has(el.getAttribute(keyAttr))) el.remove();
  });
  if (document.body) document.body.style.cursor = cursor === 'default' ? '' : cursor;
}
"""

_BOX_SCRIPT = """
(path) => {
  let cur = document.documentElement;
  for (const idx of path) {
    cur = cur ? cur.children[idx] : null;
  }
  if (!cur) return null;
  const r = cur.getBoundingClientRect();
  return { x: r.left, y: r.top, width: r.width, height: r.height };
}
"""


def playwright_available() -> bool:
    return importlib.util.find_spec("playwright.sync_api") is not None


def page_is_closed(page: Any | None) -> bool:
    if page is None:
        return True
    checker = getattr(page, "is_closed", None)
    if callable(checker):
        try:
            return bool(checker())
        except Exception:
            return True
    return False


def is_page_closed_error(exc: BaseException) -> bool:
    msg = str(exc or "").lower()
    return (
        "target page" in msg and "closed" in msg
    ) or "context or browser has been closed" in msg or "page closed" in msg


class LiveGeometry:
    """Element boxes and scroll offset read from the live page on demand."""

    def __init__(self, page: Any) -> None:
        self.page = page

    def bounding_box(self, node: Any) -> Box:
        if page_is_closed(self.page):
            return Box(0.0, 0.0, 0.0, 0.0)
        try:
            raw = self.page.evaluate(_BOX_SCRIPT, index_path(node))
        except Exception:
            return Box(0.0, 0.0, 0.0, 0.0)
        if not isinstance(raw, dict):
            return Box(0.0, 0.0, 0.0, 0.0)
        return Box(
            x=float(raw.get("x", 0.0) or 0.0),
            y=float(raw.get("y", 0.0) or 0.0),
            width=float(raw.get("width", 0.0) or 0.0),
            height=float(raw.get("height", 0.0) or 0.0),
        )

    def scroll_offset(self) -> tuple[float, float]:
        if page_is_closed(self.page):
            return (0.0, 0.0)
        try:
            raw = self.page.evaluate("() => [window.scrollX || 0, window.scrollY || 0]")
        except Exception:
            return (0.0, 0.0)
        if not isinstance(raw, (list, tuple)) or len(raw) < 2:
            return (0.0, 0.0)
        return (float(raw[0] or 0.0), float(raw[1] or 0.0))


def install_event_forwarder(page: Any, on_event: Callable[[dict[str, Any]], None]) -> None:
    def _forward(_source: Any, payload: Any) -> None:
        if isinstance(payload, dict):
            on_event(payload)

    page.expose_binding(FORWARD_BINDING, _forward)
    page.add_init_script(FORWARDER_SCRIPT)
    page.evaluate(FORWARDER_SCRIPT)


def snapshot_document(page: Any) -> PageDocument:
    return PageDocument.from_html(page.content(), url=str(page.url), geometry=LiveGeometry(page))


def refresh_document(page: Any, document: PageDocument) -> None:
    document.refresh(page.content(), url=str(page.url))


def overlay_items(document: PageDocument) -> list[dict[str, str]]:
    items: list[dict[str, str]] = []
    for el in document.body.iter("div"):
        tokens = class_tokens(el)
        if HOVER_CLASS not in tokens and SELECTED_CLASS not in tokens:
            continue
        items.append(
            {
                "key": str(el.get(OVERLAY_KEY_ATTR) or ""),
                "className": " ".join(tokens),
                "style": str(el.get("style") or ""),
            }
        )
    return items


def mirror_overlays(page: Any, document: PageDocument, *, blocking: bool) -> None:
    if page_is_closed(page):
        return
    has_style = any(str(el.get("id") or "") == STYLE_ELEMENT_ID for el in document.root.iter("style"))
    try:
        page.evaluate(
            _MIRROR_SCRIPT,
            [
                STYLE_ELEMENT_ID,
                LIVE_LAYER_ID,
                OVERLAY_KEY_ATTR,
                OVERLAY_STYLE if has_style else "",
                document.cursor or CURSOR_DEFAULT,
                bool(blocking),
                overlay_items(document),
            ],
        )
    except Exception:
        # Navigation can tear down the execution context mid-call; the next
        # loop iteration mirrors again against the new document.
        return
