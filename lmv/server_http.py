"""HTTP routing, server construction and the liveness probe for lmv."""

import http.client
import json
import logging
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlparse

from . import server_api
from .errors import NotConfigured, error_response
from .files import FileGateway
from .models import ServerSession
from .settings import DEFAULT_HOST, MAX_BODY_SIZE, UI_DIR
from .share import ShareGateway

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff2": "font/woff2",
    ".map": "application/json",
}

NOT_FOUND = error_response("NOT_FOUND", "Not found", "Check the endpoint path and method.")


class LmvServer(ThreadingHTTPServer):
    """Threading server carrying the immutable session and its gateways."""

    daemon_threads = True

    def __init__(self, server_address, session: ServerSession, share: ShareGateway,
                 files: FileGateway | None = None):
        self.session = session
        self.share = share
        self.files = files or FileGateway()
        super().__init__(server_address, LmvHandler)


class LmvHandler(SimpleHTTPRequestHandler):
    """Routes API requests and serves the UI from the ui/ directory."""

    server: LmvServer

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def send_json(self, status: int, data):
        body = json.dumps(data, ensure_ascii=False, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)

    def discard_body(self, length: int | None = None):
        """Consume an unread request body so the client sees our response."""
        if length is None:
            try:
                length = int(self.headers.get("Content-Length", 0))
            except (TypeError, ValueError):
                return
        while length > 0:
            chunk = self.rfile.read(min(length, 64 * 1024))
            if not chunk:
                break
            length -= len(chunk)

    def not_found(self):
        self.discard_body()
        self.send_json(404, NOT_FOUND)

    def read_body(self):
        """Return ``(body, None)`` or ``(None, (status, error_payload))``."""
        raw_length = self.headers.get("Content-Length", "0")
        try:
            length = int(raw_length)
        except (TypeError, ValueError):
            length = -1
        if length < 0:
            return None, (400, error_response(
                "INVALID_CONTENT_LENGTH",
                "Invalid Content-Length header",
                "Send a valid non-negative Content-Length header.",
            ))
        if length > MAX_BODY_SIZE:
            self.discard_body(length)
            return None, (413, error_response(
                "BODY_TOO_LARGE",
                "Request body too large",
                f"Reduce payload to <= {MAX_BODY_SIZE} bytes.",
            ))

        raw = self.rfile.read(length) if length else b""
        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None, (400, error_response(
                "INVALID_JSON",
                "Invalid JSON",
                "Send a valid JSON object.",
            ))
        if not isinstance(body, dict):
            return None, (400, error_response(
                "INVALID_JSON_OBJECT",
                "JSON body must be an object",
                "Send a JSON object payload.",
            ))
        return body, None

    def _dispatch(self, route):
        try:
            status, data = route()
        except Exception:
            logger.exception("Unhandled error for %s %s", self.command, self.path)
            status, data = 500, error_response("INTERNAL_ERROR", "Internal server error")
        return self.send_json(status, data)

    def do_GET(self):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")
        query_params = parse_qs(parsed.query)
        srv = self.server

        if path == "/health":
            return self._dispatch(server_api.handle_get_health)

        if path == "/api/files":
            return self._dispatch(lambda: server_api.handle_get_files(srv.session))

        if path == "/api/file":
            return self._dispatch(
                lambda: server_api.handle_get_file(srv.session, srv.files, query_params)
            )

        if path == "/api/share":
            return self._dispatch(lambda: server_api.handle_get_share(srv.share))

        if path.startswith("/api/"):
            return self.not_found()

        self.serve_static(path)

    def do_PUT(self):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")
        query_params = parse_qs(parsed.query)
        srv = self.server

        if path == "/api/file":
            body, error = self.read_body()
            if error:
                return self.send_json(*error)
            return self._dispatch(
                lambda: server_api.handle_put_file(srv.session, srv.files, query_params, body)
            )

        self.not_found()

    def do_POST(self):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")
        srv = self.server

        if path == "/api/share":
            if not srv.share.configured:
                self.discard_body()
                return self.send_json(*NotConfigured().to_response())
            body, error = self.read_body()
            if error:
                return self.send_json(*error)
            return self._dispatch(lambda: server_api.handle_post_share(srv.share, body))

        self.not_found()

    def do_DELETE(self):
        self.not_found()

    def do_HEAD(self):
        # SimpleHTTPRequestHandler would expose the working directory here.
        self.send_response(405)
        self.send_header("Allow", "GET, PUT, POST")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def serve_static(self, url_path: str):
        """Serve a file from the UI directory."""
        if url_path in ("/", ""):
            url_path = "/index.html"

        rel = url_path.lstrip("/")
        file_path = (UI_DIR / rel).resolve()

        if not file_path.is_relative_to(UI_DIR.resolve()):
            self.send_error(403, "Forbidden")
            return

        if not file_path.is_file():
            self.send_error(404, "Not found")
            return

        content_type = CONTENT_TYPES.get(file_path.suffix.lower(), "application/octet-stream")
        try:
            data = file_path.read_bytes()
        except OSError:
            self.send_error(500, "Internal server error")
            return

        self.send_response(200)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "no-cache")
        self.end_headers()
        self.wfile.write(data)


def make_server(session: ServerSession, share: ShareGateway, host: str = DEFAULT_HOST,
                port: int | None = None) -> LmvServer:
    """Bind a server for *session*. Raises OSError when the port is taken."""
    if port is None:
        port = session.port
    return LmvServer((host, port), session, share)


def is_server_running(port: int, host: str = DEFAULT_HOST, timeout: float = 1.0) -> bool:
    """Probe ``GET /health``; any connection failure means nothing is running."""
    conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.request("GET", "/health")
        resp = conn.getresponse()
        resp.read()
        return resp.status == 200
    except (OSError, http.client.HTTPException):
        return False
    finally:
        conn.close()


def run(server: LmvServer):
    host, port = server.server_address[:2]
    logger.info("Serving %d file(s) on http://%s:%d", len(server.session.files), host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down.")
    finally:
        server.server_close()
