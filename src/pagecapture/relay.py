"""In-process message relay between inspected pages, the broker and the panel."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from threading import Lock
from typing import Any, Callable

from pagecapture.constants import (
    ACTION_ELEMENT_SELECTED,
    ACTION_TOGGLE,
    BROKER_ENDPOINT,
    PANEL_ENDPOINT,
    STATUS_TOGGLED,
)
from pagecapture.storage import append_log

Handler = Callable[[dict[str, Any]], Any]


def page_endpoint(page_id: str) -> str:
    return f"page:{page_id}"


class MessageRelay:
    """Named endpoints exchanging dict messages.

    ``request`` delivers synchronously and returns the handler's response;
    ``post`` queues a fire-and-forget message until the next ``pump``.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._lock = Lock()
        self._handlers: dict[str, Handler] = {}
        self._pending: deque[tuple[str, dict[str, Any]]] = deque()
        self.log_path = log_path

    def register(self, endpoint: str, handler: Handler) -> None:
        with self._lock:
            self._handlers[endpoint] = handler

    def unregister(self, endpoint: str) -> None:
        with self._lock:
            self._handlers.pop(endpoint, None)

    def is_registered(self, endpoint: str) -> bool:
        with self._lock:
            return endpoint in self._handlers

    def request(self, endpoint: str, message: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            handler = self._handlers.get(endpoint)
        if handler is None:
            self._log(f"relay_unreachable endpoint={endpoint} action={message.get('action', '')}")
            raise ConnectionError(f"Could not establish connection. Receiving end {endpoint} does not exist.")
        response = handler(dict(message))
        return dict(response or {})

    def post(self, endpoint: str, message: dict[str, Any]) -> None:
        with self._lock:
            self._pending.append((endpoint, dict(message)))

    def pump(self) -> int:
        delivered = 0
        while True:
            with self._lock:
                if not self._pending:
                    return delivered
                endpoint, message = self._pending.popleft()
                handler = self._handlers.get(endpoint)
            if handler is None:
                self._log(f"relay_dropped endpoint={endpoint} action={message.get('action', '')}")
                continue
            handler(message)
            delivered += 1

    def _log(self, message: str) -> None:
        if self.log_path is not None:
            append_log(self.log_path, message)


class Broker:
    """Rebroadcasts captures to the panel and routes toggles to the foreground page."""

    def __init__(self, relay: MessageRelay, *, active_page: Callable[[], str | None]) -> None:
        self.relay = relay
        self.active_page = active_page
        relay.register(BROKER_ENDPOINT, self.handle)

    def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
        action = str(message.get("action", ""))
        if action == ACTION_ELEMENT_SELECTED:
            self.relay.post(PANEL_ENDPOINT, message)
            return None
        if action == ACTION_TOGGLE:
            endpoint = self.active_page()
            if not endpoint:
                return {"status": STATUS_TOGGLED, "error": "No active page to inspect."}
            try:
                response = self.relay.request(endpoint, {"action": ACTION_TOGGLE})
            except ConnectionError as exc:
                return {"status": STATUS_TOGGLED, "error": str(exc)}
            return {"status": STATUS_TOGGLED, "error": None, "page_status": response.get("status", "")}
        return None
