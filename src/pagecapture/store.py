"""Per-page store of captured elements, persisted as one storage unit."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from pagecapture.constants import DOM_CONTEXT_KEY
from pagecapture.models import CapturedElement
from pagecapture.storage import LocalStorage, append_log


class PageContextStore:
    """Captured elements per page URL, in capture order.

    A page key exists only while it holds at least one element. Pages are
    reported in first-seen order. Identical captures are kept as separate
    entries.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._pages: dict[str, list[CapturedElement]] = {}
        self._removal_listeners: list[Callable[[str], None]] = []
        self.log_path = log_path

    def __contains__(self, page_url: object) -> bool:
        return page_url in self._pages

    def __len__(self) -> int:
        return len(self._pages)

    def append(self, page_url: str, element: CapturedElement) -> None:
        self._pages.setdefault(page_url, []).append(element)

    def pages_present(self) -> list[str]:
        return list(self._pages)

    def elements_for(self, page_url: str) -> list[CapturedElement]:
        return list(self._pages.get(page_url, []))

    def element_count(self) -> int:
        return sum(len(items) for items in self._pages.values())

    def on_page_removed(self, callback: Callable[[str], None]) -> None:
        self._removal_listeners.append(callback)

    def remove_page(self, page_url: str) -> bool:
        if page_url not in self._pages:
            return False
        del self._pages[page_url]
        for callback in list(self._removal_listeners):
            callback(page_url)
        return True

    def remove_element(self, page_url: str, index: int) -> CapturedElement:
        items = self._pages.get(page_url)
        if items is None:
            raise ValueError(f"Unknown page: {page_url}")
        if index < 0 or index >= len(items):
            raise ValueError(f"Element index {index} out of range for {page_url} ({len(items)} captured)")
        removed = items.pop(index)
        if not items:
            self.remove_page(page_url)
        return removed

    def clear(self) -> None:
        for page_url in self.pages_present():
            self.remove_page(page_url)

    def as_payload(self) -> dict[str, list[dict[str, str]]]:
        return {url: [item.to_dict() for item in items] for url, items in self._pages.items()}

    def load(self, storage: LocalStorage) -> int:
        raw = storage.get(DOM_CONTEXT_KEY, {})
        pages: dict[str, list[CapturedElement]] = {}
        skipped = 0
        if not isinstance(raw, dict):
            raw = {}
            skipped += 1
        for page_url, items in raw.items():
            if not isinstance(items, list):
                skipped += 1
                continue
            for item in items:
                try:
                    element = CapturedElement.from_dict(_as_dict(item))
                except ValueError as exc:
                    skipped += 1
                    self._log(f"store_skip url={page_url} reason={exc}")
                    continue
                pages.setdefault(str(page_url), []).append(element)
        self._pages = pages
        self._log(f"store_load pages={len(pages)} elements={self.element_count()} skipped={skipped}")
        return self.element_count()

    def save(self, storage: LocalStorage) -> None:
        storage.set({DOM_CONTEXT_KEY: self.as_payload()})
        self._log(f"store_save pages={len(self._pages)} elements={self.element_count()}")

    def _log(self, message: str) -> None:
        if self.log_path is not None:
            append_log(self.log_path, message)


def _as_dict(item: Any) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError("Captured element must be an object")
    return item
