import json
import tempfile
import unittest
from pathlib import Path

from pagecapture.constants import DOM_CONTEXT_KEY
from pagecapture.models import CapturedElement
from pagecapture.storage import LocalStorage
from pagecapture.store import PageContextStore


def make_element(tag: str = "button", page_url: str = "https://a.test/", **overrides) -> CapturedElement:
    fields = {
        "tag": tag,
        "id": "",
        "name": "",
        "type": "",
        "classes": "",
        "text": tag.title(),
        "xpath": f"/html/body[1]/{tag}[1]",
        "css_selector": f"html > body > {tag}",
        "markup": f"<{tag}></{tag}>",
        "page_url": page_url,
    }
    fields.update(overrides)
    return CapturedElement(**fields)


class PageContextStoreTests(unittest.TestCase):
    def test_pages_keep_first_seen_order(self) -> None:
        store = PageContextStore()
        store.append("https://a.test/", make_element("button"))
        store.append("https://b.test/", make_element("input", "https://b.test/"))
        store.append("https://a.test/", make_element("a"))
        self.assertEqual(store.pages_present(), ["https://a.test/", "https://b.test/"])
        self.assertEqual([e.tag for e in store.elements_for("https://a.test/")], ["button", "a"])
        self.assertEqual(store.element_count(), 3)
        self.assertEqual(len(store), 2)

    def test_duplicate_captures_are_kept(self) -> None:
        store = PageContextStore()
        element = make_element()
        store.append("https://a.test/", element)
        store.append("https://a.test/", element)
        self.assertEqual(len(store.elements_for("https://a.test/")), 2)

    def test_removing_last_element_removes_page(self) -> None:
        store = PageContextStore()
        removed_pages: list[str] = []
        store.on_page_removed(removed_pages.append)
        store.append("https://a.test/", make_element("button"))
        store.append("https://a.test/", make_element("a"))
        self.assertEqual(store.remove_element("https://a.test/", 0).tag, "button")
        self.assertIn("https://a.test/", store)
        store.remove_element("https://a.test/", 0)
        self.assertNotIn("https://a.test/", store)
        self.assertEqual(removed_pages, ["https://a.test/"])

    def test_remove_element_rejects_bad_input(self) -> None:
        store = PageContextStore()
        store.append("https://a.test/", make_element())
        with self.assertRaises(ValueError):
            store.remove_element("https://missing.test/", 0)
        with self.assertRaises(ValueError):
            store.remove_element("https://a.test/", 1)
        with self.assertRaises(ValueError):
            store.remove_element("https://a.test/", -1)

    def test_remove_page_reports_presence(self) -> None:
        store = PageContextStore()
        store.append("https://a.test/", make_element())
        self.assertTrue(store.remove_page("https://a.test/"))
        self.assertFalse(store.remove_page("https://a.test/"))
        self.assertEqual(store.pages_present(), [])

    def test_elements_for_returns_copy(self) -> None:
        store = PageContextStore()
        store.append("https://a.test/", make_element())
        store.elements_for("https://a.test/").clear()
        self.assertEqual(len(store.elements_for("https://a.test/")), 1)
        self.assertEqual(store.elements_for("https://unknown.test/"), [])

    def test_save_and_load_round_trip(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            storage = LocalStorage(Path(tmp) / "storage.json")
            store = PageContextStore()
            store.append("https://a.test/", make_element("button", id="go"))
            store.append("https://b.test/", make_element("input", "https://b.test/"))
            store.save(storage)

            raw = json.loads((Path(tmp) / "storage.json").read_text(encoding="utf-8"))
            self.assertEqual(raw[DOM_CONTEXT_KEY]["https://a.test/"][0]["cssSelector"], "html > body > button")

            loaded = PageContextStore()
            self.assertEqual(loaded.load(storage), 2)
            self.assertEqual(loaded.pages_present(), ["https://a.test/", "https://b.test/"])
            self.assertEqual(loaded.elements_for("https://a.test/")[0].id, "go")

    def test_load_skips_invalid_entries(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            log_path = Path(tmp) / "capture.log"
            storage = LocalStorage(Path(tmp) / "storage.json")
            valid = make_element().to_dict()
            storage.set(
                {
                    DOM_CONTEXT_KEY: {
                        "https://a.test/": [valid, {"tag": "div"}, "junk"],
                        "https://b.test/": "not-a-list",
                        "https://c.test/": [{"tag": "p"}],
                    }
                }
            )
            store = PageContextStore(log_path=log_path)
            self.assertEqual(store.load(storage), 1)
            self.assertEqual(store.pages_present(), ["https://a.test/"])
            self.assertIn("store_skip", log_path.read_text(encoding="utf-8"))

    def test_load_from_empty_storage(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            store = PageContextStore()
            self.assertEqual(store.load(LocalStorage(Path(tmp) / "missing.json")), 0)
            self.assertEqual(store.pages_present(), [])


if __name__ == "__main__":
    unittest.main()
