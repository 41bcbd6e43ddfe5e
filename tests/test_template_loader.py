import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from template_loader import MAX_RETRIES, load_template


def _response(status: int, text: str = "", headers: dict | None = None) -> mock.Mock:
    response = mock.Mock(spec=requests.Response)
    response.status_code = status
    response.text = text
    response.headers = headers or {}
    return response


class LoadTemplateFromDiskTests(unittest.TestCase):
    def test_reads_utf8_with_bom(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "template.html"
            path.write_bytes("\ufeff<h3>Méthylation</h3>".encode("utf-8"))
            self.assertEqual(load_template(path), "<h3>Méthylation</h3>")

    def test_falls_back_to_cp1252(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "template.html"
            path.write_bytes("<p>Follow-up Labs: B12 – folate</p>".encode("cp1252"))
            self.assertEqual(load_template(str(path)), "<p>Follow-up Labs: B12 – folate</p>")

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_template("missing-template.html")


class LoadTemplateFromUrlTests(unittest.TestCase):
    def test_fetches_url(self) -> None:
        session = mock.Mock()
        session.get.return_value = _response(200, "<h3>Detox</h3>")
        self.assertEqual(load_template("https://example.org/t.html", session=session), "<h3>Detox</h3>")
        self.assertEqual(session.get.call_count, 1)

    @mock.patch("template_loader.time.sleep")
    def test_retries_server_errors(self, sleep: mock.Mock) -> None:
        session = mock.Mock()
        session.get.side_effect = [_response(503), _response(200, "<p>ok</p>")]
        self.assertEqual(load_template("http://example.org/t.html", session=session), "<p>ok</p>")
        self.assertEqual(session.get.call_count, 2)
        sleep.assert_called_once()

    @mock.patch("template_loader.time.sleep")
    def test_gives_up_after_connection_errors(self, sleep: mock.Mock) -> None:
        session = mock.Mock()
        session.get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(ValueError):
            load_template("https://example.org/t.html", session=session)
        self.assertEqual(session.get.call_count, MAX_RETRIES)

    def test_not_found_and_empty_bodies_raise(self) -> None:
        session = mock.Mock()
        session.get.return_value = _response(404)
        with self.assertRaises(ValueError):
            load_template("https://example.org/missing.html", session=session)
        session.get.return_value = _response(200, "   ")
        with self.assertRaises(ValueError):
            load_template("https://example.org/blank.html", session=session)


if __name__ == "__main__":
    unittest.main()
