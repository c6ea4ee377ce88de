"""Environment-driven configuration for capture sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CaptureConfig:
    home: Path
    storage_path: Path
    log_path: Path
    headless: bool
    toggle_key: str
    poll_ms: int

    @classmethod
    def from_env(cls) -> "CaptureConfig":
        home = Path(os.getenv("PAGECAPTURE_HOME", ".pagecapture").strip() or ".pagecapture")
        storage_raw = os.getenv("PAGECAPTURE_STORAGE_PATH", "").strip()
        log_raw = os.getenv("PAGECAPTURE_LOG_PATH", "").strip()
        try:
            poll_ms = int(float(os.getenv("PAGECAPTURE_POLL_MS", "100") or "100"))
        except ValueError:
            poll_ms = 100
        return cls(
            home=home,
            storage_path=Path(storage_raw) if storage_raw else home / "storage.json",
            log_path=Path(log_raw) if log_raw else home / "pagecapture.log",
            headless=os.getenv("PAGECAPTURE_HEADLESS", "0").strip() == "1",
            toggle_key=os.getenv("PAGECAPTURE_TOGGLE_KEY", "F2").strip() or "F2",
            poll_ms=max(20, poll_ms),
        )
