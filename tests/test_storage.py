import tempfile
import unittest
from pathlib import Path

from pagecapture.storage import LocalStorage, append_log, tail_lines

class StorageTests(unittest.TestCase):
    def test_set_merges_keys(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            storage = LocalStorage(Path(tmp) / "nested" / "storage.json")
            self.assertIsNone(storage.get("domContext"))
            storage.set({"domContext": {"u": []}})
            storage.set({"flowOrder": ["u"]})
            self.assertEqual(storage.get("domContext"), {"u": []})
            self.assertEqual(storage.get("flowOrder"), ["u"])
            storage.remove("flowOrder")
            self.assertEqual(storage.get("flowOrder", []), [])

    def test_non_object_file_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            path = Path(tmp) / "storage.json"
            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertRaises(ValueError):
                LocalStorage(path).get("domContext")

    def test_log_tail(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            log_path = Path(tmp) / "logs" / "capture.log"
            for idx in range(5):
                append_log(log_path, f"event {idx}\n")
            lines = tail_lines(log_path, 2)
            self.assertEqual(len(lines), 2)
            self.assertTrue(lines[0].endswith(" event 3"))
            self.assertTrue(lines[1].endswith(" event 4"))
            self.assertEqual(tail_lines(Path(tmp) / "absent.log", 10), [])


if __name__ == "__main__":
    unittest.main()
