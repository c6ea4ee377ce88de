import tempfile
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pagecapture.config import CaptureConfig
from pagecapture.constants import DOM_CONTEXT_KEY, HOVER_CLASS, LIVE_LAYER_ID, SELECTED_CLASS
from pagecapture.storage import LocalStorage
from pagecapture.web_live import LiveCaptureSession, run_live_capture
from pagecapture.web_page import FORWARD_BINDING, FORWARDER_SCRIPT, page_is_closed

LOGIN = "<html><head></head><body><form><input id='user'><button>Go</button></form></body></html>"
HOME = "<html><head></head><body><h1>Welcome</h1><a href='/out'>Logout</a></body></html>"
LIST = "<html><head></head><body><ul><li>Alpha</li><li>Beta</li></ul></body></html>"


class FakePage:
    def __init__(self, url: str, html: str, *, close_after: int | None = None) -> None:
        self.url = url
        self.html = html
        self.bindings: dict[str, Any] = {}
        self.init_scripts: list[str] = []
        self.evaluations: list[tuple[str, Any]] = []
        self.content_calls = 0
        self.waits = 0
        self.close_after = close_after
        self.closed = False

    def content(self) -> str:
        self.content_calls += 1
        return self.html

    def expose_binding(self, name: str, fn: Any) -> None:
        self.bindings[name] = fn

    def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluations.append((script, arg))
        if "getBoundingClientRect" in script:
            return {"x": 10, "y": 20, "width": 100, "height": 30}
        if "scrollX" in script and arg is None:
            return [0, 50]
        return None

    def is_closed(self) -> bool:
        return self.closed

    def wait_for_timeout(self, _ms: int) -> None:
        self.waits += 1
        if self.close_after is not None and self.waits >= self.close_after:
            self.closed = True

    def forward(self, payload: dict[str, Any]) -> None:
        self.bindings[FORWARD_BINDING](None, payload)

    def mirror_calls(self) -> list[list[Any]]:
        return [arg for _, arg in self.evaluations if isinstance(arg, list) and len(arg) == 7 and arg[1] == LIVE_LAYER_ID]


class LiveCaptureSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory(dir=".")
        self.addCleanup(self._tmp.cleanup)
        base = Path(self._tmp.name)
        self.config = CaptureConfig(
            home=base,
            storage_path=base / "storage.json",
            log_path=base / "pagecapture.log",
            headless=True,
            toggle_key="F2",
            poll_ms=20,
        )
        self.page = FakePage("https://app.test/login", LOGIN)
        self.session = LiveCaptureSession(self.page, self.config)

    def test_begin_installs_forwarder(self) -> None:
        self.session.begin()
        self.assertIn(FORWARD_BINDING, self.page.bindings)
        self.assertEqual(self.page.init_scripts, [FORWARDER_SCRIPT])
        self.assertEqual(self.session.active_endpoint(), "page:1")
        self.assertTrue(self.session.relay.is_registered("panel"))

    def test_toggle_key_then_click_captures(self) -> None:
        self.session.begin()
        self.page.forward({"type": "keydown", "path": None, "key": "F2"})
        self.session.step()
        self.assertTrue(self.session.panel.inspecting)
        self.assertTrue(self.session.inspector.active)

        self.page.forward({"type": "pointermove", "path": [1, 0, 1], "key": ""})
        self.page.forward({"type": "click", "path": [1, 0, 1], "key": ""})
        self.session.step()
        items = self.session.panel.store.elements_for("https://app.test/login")
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].tag, "button")
        self.assertEqual(items[0].css_selector, "html > body > form > button")

        mirror = self.page.mirror_calls()[-1]
        self.assertEqual(mirror[4], "crosshair")
        self.assertTrue(mirror[5])
        classes = sorted(item["className"] for item in mirror[6])
        self.assertEqual(classes, [HOVER_CLASS, SELECTED_CLASS])
        selected = [item for item in mirror[6] if item["className"] == SELECTED_CLASS][0]
        self.assertIn("top: 70px", selected["style"])

    def test_navigation_rebinds_and_resumes(self) -> None:
        self.session.begin()
        self.session.panel.start_inspecting()
        self.page.url = "https://app.test/home"
        self.page.html = HOME
        self.session.step()
        self.assertEqual(self.session.active_endpoint(), "page:2")
        self.assertFalse(self.session.relay.is_registered("page:1"))
        self.assertTrue(self.session.inspector.active)
        self.assertEqual(self.session.document.url, "https://app.test/home")

    def test_click_after_same_url_insertion_captures_clicked_node(self) -> None:
        self.page.html = LIST
        self.session.begin()
        self.session.panel.start_inspecting()
        self.session.step()
        self.page.html = LIST.replace("<ul>", "<ul><li>New</li>")
        self.page.forward({"type": "click", "path": [1, 0, 1], "key": ""})
        self.session.step()
        item, = self.session.panel.store.elements_for("https://app.test/login")
        self.assertEqual(item.text, "Alpha")
        self.assertEqual(item.xpath, "/html/body[1]/ul[1]/li[2]")
        self.assertEqual(item.markup, "<li>Alpha</li>")

    def test_missing_target_refreshes_snapshot_once(self) -> None:
        self.session.begin()
        self.session.panel.start_inspecting()
        before = self.page.content_calls
        self.page.forward({"type": "click", "path": [1, 9], "key": ""})
        self.session.step()
        self.assertEqual(self.page.content_calls, before + 1)
        self.assertEqual(self.session.panel.store.element_count(), 0)
        self.assertIn("forwarded_target_missing", self.config.log_path.read_text(encoding="utf-8"))

    def test_events_before_start_are_ignored(self) -> None:
        self.session.begin()
        self.page.forward({"type": "click", "path": [1, 0, 1], "key": ""})
        self.page.forward({"type": "scroll", "path": [1], "key": ""})
        self.session.step()
        self.assertEqual(self.session.panel.store.element_count(), 0)
        self.assertFalse(self.page.mirror_calls()[-1][5])

    def test_run_saves_on_page_close(self) -> None:
        self.page.close_after = 2
        self.session.run()
        self.assertTrue(page_is_closed(self.page))
        self.assertEqual(self.page.waits, 2)
        self.assertIsNone(self.session.inspector)
        self.assertFalse(self.session.relay.is_registered("panel"))
        self.assertEqual(LocalStorage(self.config.storage_path).get(DOM_CONTEXT_KEY), {})


class RunLiveCaptureTests(unittest.TestCase):
    def test_missing_playwright_exits(self) -> None:
        with patch("pagecapture.web_live.playwright_available", return_value=False):
            with self.assertRaises(SystemExit):
                run_live_capture("https://app.test/", CaptureConfig.from_env())


if __name__ == "__main__":
    unittest.main()
