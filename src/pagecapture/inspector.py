"""Inspector state machine running against one inspected page."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import lxml.html

from pagecapture.constants import (
    ACTION_ELEMENT_SELECTED,
    ACTION_START,
    ACTION_STOP,
    ACTION_TOGGLE,
    BROKER_ENDPOINT,
    CURSOR_ACTIVE,
    CURSOR_DEFAULT,
    EVENT_CLICK,
    EVENT_KEYDOWN,
    EVENT_POINTER_LEAVE,
    EVENT_POINTER_MOVE,
    INSTRUMENTATION_CLASS_PREFIX,
    PANEL_ENDPOINT,
    STATUS_STARTED,
    STATUS_STOPPED,
)
from pagecapture.dom import InputEvent, PageDocument, class_tokens, strip_instrumentation
from pagecapture.highlight import HighlightController
from pagecapture.models import CapturedElement
from pagecapture.relay import MessageRelay
from pagecapture.selectors import css_selector_of, xpath_of
from pagecapture.storage import append_log

STATE_IDLE = "idle"
STATE_ACTIVE = "active"


def capture_element(document: PageDocument, node: Any) -> CapturedElement:
    clean = strip_instrumentation(node)
    classes = [tok for tok in class_tokens(node) if not tok.startswith(INSTRUMENTATION_CLASS_PREFIX)]
    return CapturedElement(
        tag=str(node.tag).lower(),
        id=str(node.get("id") or ""),
        name=str(node.get("name") or ""),
        type=str(node.get("type") or ""),
        classes=" ".join(classes),
        text=clean.text_content().strip(),
        xpath=xpath_of(node),
        css_selector=css_selector_of(node),
        markup=lxml.html.tostring(clean, encoding="unicode", with_tail=False),
        page_url=document.url,
    )


class Inspector:
    """Idle/active inspection session for one page.

    While active, capture-phase listeners on the document drive the highlight
    controller and every confirmed click emits an ``elementSelected`` message.
    """

    def __init__(
        self,
        document: PageDocument,
        relay: MessageRelay,
        *,
        endpoint: str,
        highlight: HighlightController | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.document = document
        self.relay = relay
        self.endpoint = endpoint
        self.highlight = highlight if highlight is not None else HighlightController(document)
        self.log_path = log_path
        self.active = False
        self.hovered: Any | None = None
        self._listening = False

    @property
    def state(self) -> str:
        return STATE_ACTIVE if self.active else STATE_IDLE

    def attach(self) -> None:
        self.relay.register(self.endpoint, self.handle_message)

    def detach(self) -> None:
        # Page teardown: listeners and overlays go away with the page.
        self.stop()
        self.relay.unregister(self.endpoint)

    def handle_message(self, message: dict[str, Any]) -> dict[str, Any] | None:
        action = str(message.get("action", ""))
        if action == ACTION_START:
            self.start()
            return {"status": STATUS_STARTED}
        if action == ACTION_STOP:
            self.stop()
            return {"status": STATUS_STOPPED}
        if action == ACTION_TOGGLE:
            if self.active:
                self.stop()
                return {"status": STATUS_STOPPED}
            self.start()
            return {"status": STATUS_STARTED}
        return None

    def start(self) -> None:
        self.active = True
        if self._listening:
            return
        for kind, handler in self._handlers():
            self.document.add_event_listener(kind, handler, capture=True)
        self._listening = True
        self.document.cursor = CURSOR_ACTIVE
        self._log(f"inspector_start url={self.document.url}")

    def stop(self) -> None:
        was_active = self.active
        self.active = False
        if self._listening:
            for kind, handler in self._handlers():
                self.document.remove_event_listener(kind, handler, capture=True)
            self._listening = False
        self.document.cursor = CURSOR_DEFAULT
        self.highlight.remove_hover()
        self.hovered = None
        if was_active:
            self._log(f"inspector_stop url={self.document.url}")

    def reset(self) -> None:
        self.stop()
        self.highlight.clear_all()

    def on_pointer_move(self, event: InputEvent) -> None:
        if not self.active:
            return
        target = event.target
        if target is None or self.document.is_instrumentation(target):
            return
        event.prevent_default()
        event.stop_propagation()
        self.hovered = target
        self.highlight.show_hover(target)

    def on_pointer_leave(self, event: InputEvent) -> None:
        if not self.active:
            return
        self.highlight.hide_hover()
        self.hovered = None

    def on_key(self, event: InputEvent) -> None:
        if event.key == "Escape" and self.active:
            self.relay.post(PANEL_ENDPOINT, {"action": ACTION_STOP, "source": self.endpoint})

    def on_click(self, event: InputEvent) -> None:
        if not self.active:
            return
        event.prevent_default()
        event.stop_propagation()
        target = event.target
        if target is None or self.document.is_instrumentation(target):
            return
        record = capture_element(self.document, target)
        self.highlight.mark_selected(target)
        self.relay.post(
            BROKER_ENDPOINT,
            {
                "action": ACTION_ELEMENT_SELECTED,
                "element": record.to_dict(),
                "pageUrl": record.page_url,
            },
        )
        self._log(f"element_selected url={record.page_url} xpath={record.xpath}")

    def _handlers(self) -> tuple[tuple[str, Any], ...]:
        return (
            (EVENT_POINTER_MOVE, self.on_pointer_move),
            (EVENT_POINTER_LEAVE, self.on_pointer_leave),
            (EVENT_CLICK, self.on_click),
            (EVENT_KEYDOWN, self.on_key),
        )

    def _log(self, message: str) -> None:
        if self.log_path is not None:
            append_log(self.log_path, message)
