"""API handlers for lmv.

Each handler returns ``(status, data)``; gateway errors are turned into
structured JSON error payloads here so a failing request never takes the
server down.
"""

import logging
import os

from .errors import InvalidContent, LmvError, NotConfigured, error_response
from .files import FileGateway
from .models import ServerSession
from .share import ShareGateway

logger = logging.getLogger(__name__)


def _first(query_params: dict, key: str):
    values = query_params.get(key) or [None]
    return values[0]


def _not_managed(raw_path: str):
    return 404, error_response(
        "FILE_NOT_MANAGED",
        f"Not a file served by this session: {raw_path}",
        "Pick a path listed by GET /api/files.",
    )


def handle_get_health():
    """GET /health — liveness probe."""
    return 200, {"ok": True}


def handle_get_files(session: ServerSession):
    """GET /api/files — the session's file set, in discovery order."""
    files = []
    for path in session.files:
        files.append(
            {
                "path": str(path),
                "name": session.relative_name(path),
                "exists": path.is_file(),
            }
        )
    return 200, {"cwd": str(session.cwd), "files": files}


def handle_get_file(session: ServerSession, gateway: FileGateway, query_params: dict):
    """GET /api/file?path=... — content of one managed file."""
    raw_path = _first(query_params, "path")
    path = session.lookup(raw_path)
    if path is None:
        return _not_managed(raw_path)

    try:
        content = gateway.read(path)
    except LmvError as exc:
        return exc.to_response()
    return 200, {"content": content, "filename": path.name, "path": str(path)}


def handle_put_file(session: ServerSession, gateway: FileGateway, query_params: dict, body: dict):
    """PUT /api/file?path=... — overwrite one managed file with ``body['content']``."""
    raw_path = _first(query_params, "path")
    path = session.lookup(raw_path)
    if path is None:
        return _not_managed(raw_path)

    try:
        gateway.write(path, body.get("content"))
    except LmvError as exc:
        return exc.to_response()
    return 200, {"success": True}


def handle_get_share(share: ShareGateway):
    """GET /api/share — whether sharing is configured."""
    return 200, share.status()


def handle_post_share(share: ShareGateway, body: dict):
    """POST /api/share — publish ``body['content']`` as a gist."""
    filename = body.get("filename")
    is_public = body.get("public") is not False

    try:
        if not share.configured:
            raise NotConfigured()
        if not isinstance(filename, str) or not os.path.basename(filename.strip()):
            raise InvalidContent(
                "'filename' must be a non-empty string",
                "Send JSON with string 'content' and 'filename' fields.",
            )
        publication = share.share(
            body.get("content"),
            os.path.basename(filename.strip()),
            is_public=is_public,
        )
    except LmvError as exc:
        return exc.to_response()
    return 200, publication.as_dict()
