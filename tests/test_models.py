import unittest

from pagecapture.models import CapturedElement

PAYLOAD = {
    "tag": "input",
    "id": "user",
    "name": "username",
    "type": "text",
    "classes": "field wide",
    "text": "",
    "xpath": '//*[@id="user"]',
    "cssSelector": "#user",
    "markup": '<input id="user" name="username" type="text" class="field wide">',
    "pageUrl": "https://a.test/login",
}

class CapturedElementTests(unittest.TestCase):
    def test_parses_wire_keys(self) -> None:
        element = CapturedElement.from_dict(PAYLOAD)
        self.assertEqual(element.css_selector, "#user")
        self.assertEqual(element.page_url, "https://a.test/login")
        self.assertEqual(element.to_dict(), PAYLOAD)

    def test_rejects_missing_or_extra_keys(self) -> None:
        missing = dict(PAYLOAD)
        del missing["markup"]
        with self.assertRaises(ValueError):
            CapturedElement.from_dict(missing)
        with self.assertRaises(ValueError):
            CapturedElement.from_dict({**PAYLOAD, "value": "secret"})

    def test_rejects_non_string_values(self) -> None:
        with self.assertRaises(ValueError):
            CapturedElement.from_dict({**PAYLOAD, "text": None})
        with self.assertRaises(ValueError):
            CapturedElement.from_dict(["not", "an", "object"])


if __name__ == "__main__":
    unittest.main()
