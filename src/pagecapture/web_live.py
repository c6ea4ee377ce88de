"""Live capture loop wiring a Playwright page to the inspector and the panel."""

from __future__ import annotations

from collections import deque
from typing import Any

from pagecapture.config import CaptureConfig
from pagecapture.constants import (
    EVENT_CLICK,
    EVENT_KEYDOWN,
    EVENT_POINTER_MOVE,
    INSPECTOR_EVENT_KINDS,
)
from pagecapture.dom import InputEvent, PageDocument, resolve_index_path
from pagecapture.inspector import Inspector
from pagecapture.panel import ControlPanel
from pagecapture.relay import Broker, MessageRelay, page_endpoint
from pagecapture.storage import LocalStorage, append_log
from pagecapture.web_page import (
    install_event_forwarder,
    is_page_closed_error,
    mirror_overlays,
    page_is_closed,
    playwright_available,
    refresh_document,
    snapshot_document,
)


class LiveCaptureSession:
    """One browser page under inspection plus the panel that collects captures.

    Every main-frame navigation tears the inspector down and binds a fresh one
    to a new snapshot; the panel re-issues ``start`` if it was inspecting.
    """

    def __init__(self, page: Any, config: CaptureConfig) -> None:
        self.page = page
        self.config = config
        self.relay = MessageRelay(log_path=config.log_path)
        self.panel = ControlPanel(
            self.relay,
            storage=LocalStorage(config.storage_path),
            active_page=self.active_endpoint,
            log_path=config.log_path,
        )
        self.broker = Broker(self.relay, active_page=self.active_endpoint)
        self.document: PageDocument | None = None
        self.inspector: Inspector | None = None
        self._events: deque[dict[str, Any]] = deque()
        self._page_seq = 0

    def active_endpoint(self) -> str | None:
        if self.inspector is None or page_is_closed(self.page):
            return None
        return self.inspector.endpoint

    def begin(self) -> None:
        self.panel.open()
        install_event_forwarder(self.page, self._events.append)
        self._bind_document()
        append_log(self.config.log_path, f"live_session_begin url={self.page.url}")

    def end(self) -> None:
        if self.inspector is not None:
            self.inspector.detach()
            self.inspector = None
        self.panel.close()
        append_log(
            self.config.log_path,
            f"live_session_end pages={len(self.panel.store)} elements={self.panel.store.element_count()}",
        )

    def step(self) -> None:
        if self.document is None or str(self.page.url) != self.document.url:
            resume = self.panel.inspecting
            self._bind_document()
            if resume:
                self.panel.start_inspecting()
        while self._events:
            self.handle_forwarded(self._events.popleft())
        self.relay.pump()
        if self.document is not None and self.inspector is not None:
            mirror_overlays(self.page, self.document, blocking=self.inspector.active)

    def handle_forwarded(self, payload: dict[str, Any]) -> None:
        kind = str(payload.get("type", ""))
        key = str(payload.get("key", ""))
        if kind not in INSPECTOR_EVENT_KINDS or self.document is None:
            return
        if kind == EVENT_KEYDOWN and key == self.config.toggle_key:
            self.panel.request_toggle()
            return
        # Clicks resolve against a fresh snapshot of the live page.
        fresh = kind == EVENT_CLICK and self.inspector is not None and self.inspector.active
        target = self._resolve_target(payload.get("path"), fresh=fresh)
        if kind in (EVENT_POINTER_MOVE, EVENT_CLICK) and target is None:
            append_log(self.config.log_path, f"forwarded_target_missing type={kind} path={payload.get('path')}")
            return
        self.document.dispatch(InputEvent(kind=kind, target=target, key=key))

    def run(self) -> None:
        self.begin()
        try:
            while not page_is_closed(self.page):
                try:
                    self.page.wait_for_timeout(self.config.poll_ms)
                    self.step()
                except Exception as exc:
                    if is_page_closed_error(exc):
                        break
                    raise
        except KeyboardInterrupt:
            pass
        finally:
            self.end()

    def _bind_document(self) -> None:
        if self.inspector is not None:
            self.inspector.detach()
        self._events.clear()
        self._page_seq += 1
        self.document = snapshot_document(self.page)
        self.inspector = Inspector(
            self.document,
            self.relay,
            endpoint=page_endpoint(str(self._page_seq)),
            log_path=self.config.log_path,
        )
        self.inspector.attach()
        append_log(self.config.log_path, f"page_bound url={self.document.url} endpoint={self.inspector.endpoint}")

    def _resolve_target(self, raw_path: Any, *, fresh: bool = False) -> Any | None:
        if self.document is None or not isinstance(raw_path, list):
            return None
        try:
            path = [int(idx) for idx in raw_path]
        except (TypeError, ValueError):
            return None
        if fresh:
            refresh_document(self.page, self.document)
            return resolve_index_path(self.document.root, path)
        target = resolve_index_path(self.document.root, path)
        if target is not None:
            return target
        # The page changed since the snapshot; take a new one and look again.
        refresh_document(self.page, self.document)
        return resolve_index_path(self.document.root, path)


def run_live_capture(url: str, config: CaptureConfig) -> dict[str, Any]:
    if not playwright_available():
        raise SystemExit(
            "Playwright is not installed. Install it with 'pip install playwright' "
            "and 'playwright install chromium'."
        )
    from playwright.sync_api import sync_playwright

    with sync_playwright() as p:
        browser = _launch_browser(p, headless=config.headless)
        try:
            page = browser.new_page()
            page.goto(url)
            session = LiveCaptureSession(page, config)
            session.run()
        finally:
            try:
                browser.close()
            except Exception as exc:
                if not is_page_closed_error(exc):
                    raise
    return {
        "pages": session.panel.store.pages_present(),
        "elements": session.panel.store.element_count(),
        "flow": session.panel.flow.current_order(),
    }


def _launch_browser(playwright_obj: Any, *, headless: bool) -> Any:
    kwargs: dict[str, Any] = {"headless": headless}
    if not headless:
        kwargs["args"] = ["--window-size=1280,860"]
    try:
        return playwright_obj.chromium.launch(channel="chrome", **kwargs)
    except Exception:
        return playwright_obj.chromium.launch(**kwargs)
