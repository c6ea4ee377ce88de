"""User-defined navigation order across captured pages."""

from __future__ import annotations

from pagecapture.constants import FLOW_ORDER_KEY
from pagecapture.storage import LocalStorage
from pagecapture.store import PageContextStore


class FlowOrderManager:
    def __init__(self, store: PageContextStore) -> None:
        self.store = store
        self._order: list[str] = []
        store.on_page_removed(self.remove)

    def __contains__(self, page_url: object) -> bool:
        return page_url in self._order

    def current_order(self) -> list[str]:
        return list(self._order)

    def labelled_order(self) -> list[tuple[str, str]]:
        return [(flow_label(idx), url) for idx, url in enumerate(self._order)]

    def toggle(self, page_url: str) -> bool:
        """Include or exclude a page; returns whether it is now in the order."""
        if page_url in self._order:
            self._order.remove(page_url)
            return False
        if page_url not in self.store:
            raise ValueError(f"Unknown page: {page_url}")
        self._order.append(page_url)
        return True

    def move_up(self, page_url: str) -> None:
        if page_url not in self._order:
            return
        idx = self._order.index(page_url)
        if idx == 0:
            return
        self._order[idx - 1], self._order[idx] = self._order[idx], self._order[idx - 1]

    def move_down(self, page_url: str) -> None:
        if page_url not in self._order:
            return
        idx = self._order.index(page_url)
        if idx == len(self._order) - 1:
            return
        self._order[idx + 1], self._order[idx] = self._order[idx], self._order[idx + 1]

    def remove(self, page_url: str) -> None:
        if page_url in self._order:
            self._order.remove(page_url)

    def load(self, storage: LocalStorage) -> None:
        raw = storage.get(FLOW_ORDER_KEY, [])
        order: list[str] = []
        if isinstance(raw, list):
            for item in raw:
                url = str(item)
                if url in self.store and url not in order:
                    order.append(url)
        self._order = order

    def save(self, storage: LocalStorage) -> None:
        storage.set({FLOW_ORDER_KEY: list(self._order)})


def flow_label(idx: int) -> str:
    return "Start Page" if idx == 0 else f"Next Page {idx}"
