"""Data models and strict parsing for captured elements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pagecapture.constants import CAPTURED_ELEMENT_KEYS


@dataclass(frozen=True)
class CapturedElement:
    tag: str
    id: str
    name: str
    type: str
    classes: str
    text: str
    xpath: str
    css_selector: str
    markup: str
    page_url: str

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CapturedElement":
        if not isinstance(payload, dict):
            raise ValueError("Captured element must be an object")
        keys = set(payload.keys())
        expected = set(CAPTURED_ELEMENT_KEYS)
        if keys != expected:
            missing = sorted(expected - keys)
            extra = sorted(keys - expected)
            raise ValueError(f"Invalid keys. missing={missing}, extra={extra}")
        return cls(
            tag=_expect_str(payload, "tag"),
            id=_expect_str(payload, "id"),
            name=_expect_str(payload, "name"),
            type=_expect_str(payload, "type"),
            classes=_expect_str(payload, "classes"),
            text=_expect_str(payload, "text"),
            xpath=_expect_str(payload, "xpath"),
            css_selector=_expect_str(payload, "cssSelector"),
            markup=_expect_str(payload, "markup"),
            page_url=_expect_str(payload, "pageUrl"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "tag": self.tag,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "classes": self.classes,
            "text": self.text,
            "xpath": self.xpath,
            "cssSelector": self.css_selector,
            "markup": self.markup,
            "pageUrl": self.page_url,
        }


def _expect_str(payload: dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value
