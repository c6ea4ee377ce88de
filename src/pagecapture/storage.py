"""File storage helpers for persisted capture state and the session log."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def append_log(path: Path, message: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).isoformat()
    with path.open("a", encoding="utf-8") as fh:
        fh.write(f"{stamp} {message.rstrip()}\n")


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
        fh.write("\n")


def read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ValueError(f"Storage file {path} does not hold a JSON object")
    return payload


def tail_lines(path: Path, line_count: int) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as fh:
        lines = fh.readlines()
    return [line.rstrip("\n") for line in lines[-line_count:]]


class LocalStorage:
    """Key/value document persisted as one JSON file.

    Every ``set`` rewrites the whole file; keys not named in the call are kept.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def get(self, key: str, default: Any = None) -> Any:
        return read_json(self.path).get(key, default)

    def set(self, items: dict[str, Any]) -> None:
        payload = read_json(self.path)
        payload.update(items)
        write_json(self.path, payload)

    def remove(self, key: str) -> None:
        payload = read_json(self.path)
        if key in payload:
            del payload[key]
            write_json(self.path, payload)
