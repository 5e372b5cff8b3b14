import http.client
import json
import socket
import sys
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from lmv import server_http  # noqa: E402
from lmv.models import ServerSession  # noqa: E402
from lmv.share import ShareGateway  # noqa: E402


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class ServerHttpTests(unittest.TestCase):
    def setUp(self):
        self.temp = tempfile.TemporaryDirectory()
        self.root = Path(self.temp.name).resolve()
        self.doc = self.root / "doc.md"
        self.doc.write_text("# hello\n", encoding="utf-8")
        self.opener = mock.Mock()
        self.session = ServerSession(cwd=self.root, files=(self.doc,), inputs=("doc.md",))

        self.server = server_http.make_server(
            self.session, ShareGateway(None, opener=self.opener), port=0
        )
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.port = self.server.server_address[1]

    def tearDown(self):
        self.server.shutdown()
        self.server.server_close()
        self.thread.join(timeout=2)
        self.temp.cleanup()

    def _request(self, method: str, path: str, body: bytes | None = None):
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=3)
        headers = {"Content-Type": "application/json"} if body is not None else {}
        conn.request(method, path, body=body, headers=headers)
        resp = conn.getresponse()
        raw = resp.read()
        status = resp.status
        content_type = resp.getheader("Content-Type", "")
        conn.close()
        if content_type.startswith("application/json"):
            return status, json.loads(raw.decode("utf-8"))
        return status, raw

    def test_health(self):
        self.assertEqual((200, {"ok": True}), self._request("GET", "/health"))

    def test_get_file(self):
        status, payload = self._request("GET", "/api/file")
        self.assertEqual(200, status)
        self.assertEqual("# hello\n", payload["content"])
        self.assertEqual("doc.md", payload["filename"])

    def test_get_files(self):
        status, payload = self._request("GET", "/api/files")
        self.assertEqual(200, status)
        self.assertEqual(["doc.md"], [f["name"] for f in payload["files"]])

    def test_put_then_get_round_trip(self):
        status, payload = self._request(
            "PUT", "/api/file?path=doc.md", json.dumps({"content": "# edited\n"}).encode()
        )
        self.assertEqual((200, {"success": True}), (status, payload))
        _, payload = self._request("GET", "/api/file?path=doc.md")
        self.assertEqual("# edited\n", payload["content"])

    def test_put_non_string_content_returns_400_and_keeps_file(self):
        status, payload = self._request("PUT", "/api/file", b'{"content": 42}')
        self.assertEqual(400, status)
        self.assertEqual("INVALID_CONTENT", payload["error"]["code"])
        self.assertEqual("# hello\n", self.doc.read_text(encoding="utf-8"))

    def test_put_malformed_json_returns_400(self):
        status, payload = self._request("PUT", "/api/file", b'{"content":')
        self.assertEqual(400, status)
        self.assertEqual("INVALID_JSON", payload["error"]["code"])

    def test_put_non_object_json_returns_400(self):
        status, payload = self._request("PUT", "/api/file", b"[1,2,3]")
        self.assertEqual(400, status)
        self.assertEqual("INVALID_JSON_OBJECT", payload["error"]["code"])

    def test_oversized_body_returns_413(self):
        with mock.patch.object(server_http, "MAX_BODY_SIZE", 16):
            status, payload = self._request(
                "PUT", "/api/file", json.dumps({"content": "A" * 64}).encode()
            )
        self.assertEqual(413, status)
        self.assertEqual("BODY_TOO_LARGE", payload["error"]["code"])

    def test_file_removed_after_start_returns_404(self):
        self.doc.unlink()
        status, payload = self._request("GET", "/api/file")
        self.assertEqual(404, status)
        self.assertEqual("NOT_FOUND", payload["error"]["code"])

    def test_share_status_and_unconfigured_post(self):
        self.assertEqual((200, {"configured": False}), self._request("GET", "/api/share"))
        status, payload = self._request(
            "POST", "/api/share", json.dumps({"content": "# hi", "filename": "doc.md"}).encode()
        )
        self.assertEqual(400, status)
        self.assertEqual("NOT_CONFIGURED", payload["error"]["code"])
        self.opener.assert_not_called()

    def test_unconfigured_share_wins_over_malformed_body(self):
        for body in (b"{not json", b"[1, 2]"):
            status, payload = self._request("POST", "/api/share", body)
            self.assertEqual(400, status)
            self.assertEqual("NOT_CONFIGURED", payload["error"]["code"])
        self.opener.assert_not_called()

    def test_path_with_null_byte_is_not_managed(self):
        status, payload = self._request("GET", "/api/file?path=a%00.md")
        self.assertEqual(404, status)
        self.assertEqual("FILE_NOT_MANAGED", payload["error"]["code"])
        self.assertEqual((200, {"ok": True}), self._request("GET", "/health"))

    def test_unknown_api_route_returns_404_json(self):
        status, payload = self._request("GET", "/api/nope")
        self.assertEqual(404, status)
        self.assertEqual("NOT_FOUND", payload["error"]["code"])
        status, _ = self._request("POST", "/api/file", b"{}")
        self.assertEqual(404, status)

    def test_index_is_served(self):
        status, body = self._request("GET", "/")
        self.assertEqual(200, status)
        self.assertIn(b"<title>lmv</title>", body)

    def test_static_path_traversal_is_refused(self):
        status, _ = self._request("GET", "/../../etc/passwd")
        self.assertIn(status, (403, 404))

    def test_unhandled_error_returns_500_and_server_survives(self):
        with mock.patch.object(server_http.server_api, "handle_get_files", side_effect=RuntimeError("x")):
            status, payload = self._request("GET", "/api/files")
        self.assertEqual(500, status)
        self.assertEqual("INTERNAL_ERROR", payload["error"]["code"])
        self.assertEqual(200, self._request("GET", "/health")[0])

    def test_is_server_running_detects_live_server(self):
        self.assertTrue(server_http.is_server_running(self.port))


class LivenessProbeTests(unittest.TestCase):
    def test_no_listener_means_not_running(self):
        self.assertFalse(server_http.is_server_running(_free_port()))

    def test_non_lmv_listener_without_health_means_not_running(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            port = sock.getsockname()[1]

            def _answer():
                conn, _ = sock.accept()
                with conn:
                    conn.recv(1024)
                    conn.sendall(b"HTTP/1.0 404 Not Found\r\nContent-Length: 0\r\n\r\n")

            t = threading.Thread(target=_answer, daemon=True)
            t.start()
            self.assertFalse(server_http.is_server_running(port))
            t.join(timeout=2)


if __name__ == "__main__":
    unittest.main()
