"""Controlling-panel session: owns captured pages, the flow order and the inspect toggle."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from pagecapture.constants import (
    ACTION_ELEMENT_SELECTED,
    ACTION_START,
    ACTION_STOP,
    ACTION_TOGGLE,
    BROKER_ENDPOINT,
    PANEL_ENDPOINT,
    REFRESH_PAGE_MESSAGE,
    STATUS_STARTED,
    STATUS_STOPPED,
)
from pagecapture.flow import FlowOrderManager
from pagecapture.generation import (
    GeneratedCode,
    GenerationOptions,
    Generator,
    export_generation_request,
    request_generation,
)
from pagecapture.models import CapturedElement
from pagecapture.relay import MessageRelay
from pagecapture.storage import LocalStorage, append_log
from pagecapture.store import PageContextStore


class ControlPanel:
    """One panel lifetime: created on open, persisted and torn down on close.

    ``active_page`` returns the relay endpoint of the foreground page, or
    ``None`` when there is no page to talk to.
    """

    def __init__(
        self,
        relay: MessageRelay,
        *,
        storage: LocalStorage,
        active_page: Callable[[], str | None],
        log_path: Path | None = None,
    ) -> None:
        self.relay = relay
        self.storage = storage
        self.active_page = active_page
        self.log_path = log_path
        self.store = PageContextStore(log_path=log_path)
        self.flow = FlowOrderManager(self.store)
        self.inspecting = False
        self.last_error = ""

    def open(self) -> None:
        self.relay.register(PANEL_ENDPOINT, self.handle_message)
        self.store.load(self.storage)
        self.flow.load(self.storage)

    def close(self) -> None:
        self.save()
        self.relay.unregister(PANEL_ENDPOINT)

    def save(self) -> None:
        self.store.save(self.storage)
        self.flow.save(self.storage)

    def handle_message(self, message: dict[str, Any]) -> dict[str, Any] | None:
        action = str(message.get("action", ""))
        if action == ACTION_ELEMENT_SELECTED:
            self._record_capture(message)
            return None
        if action == ACTION_STOP:
            status = self.stop_inspecting()
            return {"status": status}
        return None

    def toggle_inspector(self) -> str:
        if self.inspecting:
            return self.stop_inspecting()
        return self.start_inspecting()

    def start_inspecting(self) -> str:
        self.inspecting = True
        return self._send(ACTION_START)

    def stop_inspecting(self) -> str:
        self.inspecting = False
        return self._send(ACTION_STOP)

    def request_toggle(self) -> str:
        """Toggle the foreground page through the broker."""
        response = self.relay.request(BROKER_ENDPOINT, {"action": ACTION_TOGGLE})
        error = response.get("error")
        if error:
            self._connection_lost(str(error))
            return REFRESH_PAGE_MESSAGE
        page_status = str(response.get("page_status", ""))
        if page_status == STATUS_STARTED:
            self.inspecting = True
        elif page_status == STATUS_STOPPED:
            self.inspecting = False
        return page_status

    def set_visibility(self, *, hidden: bool) -> str:
        if hidden or not self.inspecting:
            return ""
        return self._send(ACTION_START)

    def generate(self, generator: Generator, options: GenerationOptions) -> GeneratedCode:
        return request_generation(self.store, self.flow, generator, options, log_path=self.log_path)

    def export(self, path: Path, options: GenerationOptions) -> dict[str, Any]:
        payload = export_generation_request(path, self.store, self.flow, options)
        self._log(f"generation_export path={path} pages={len(payload['multiPageContext'])}")
        return payload

    def _send(self, action: str) -> str:
        endpoint = self.active_page()
        try:
            if not endpoint:
                raise ConnectionError("No active page to inspect.")
            response = self.relay.request(endpoint, {"action": action})
        except ConnectionError as exc:
            self._connection_lost(str(exc))
            return REFRESH_PAGE_MESSAGE
        self.last_error = ""
        return str(response.get("status", ""))

    def _connection_lost(self, reason: str) -> None:
        self.inspecting = False
        self.last_error = REFRESH_PAGE_MESSAGE
        self._log(f"inspector_unreachable reason={reason}")

    def _record_capture(self, message: dict[str, Any]) -> None:
        try:
            element = CapturedElement.from_dict(message.get("element") or {})
        except ValueError as exc:
            self._log(f"capture_rejected reason={exc}")
            return
        page_url = str(message.get("pageUrl") or element.page_url or "unknown")
        self.store.append(page_url, element)
        self._log(f"capture_stored url={page_url} count={len(self.store.elements_for(page_url))}")

    def _log(self, message: str) -> None:
        if self.log_path is not None:
            append_log(self.log_path, message)
