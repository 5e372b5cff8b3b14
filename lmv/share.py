"""Publish Markdown content as a GitHub Gist."""

import http.client
import json
import logging
import urllib.error
import urllib.request

from .errors import EmptyContent, NotConfigured, RemoteRejected, RemoteUnavailable
from .models import GistPublication
from .settings import GIST_DESCRIPTION, GITHUB_API_URL, GITHUB_API_VERSION

logger = logging.getLogger(__name__)


class ShareGateway:
    """Creates gists with a token injected at construction.

    ``opener`` defaults to ``urllib.request.urlopen`` and is replaceable so
    that tests never touch the network.
    """

    def __init__(self, token: str | None, api_url: str = GITHUB_API_URL, opener=None):
        self.token = token or None
        self.api_url = api_url.rstrip("/")
        self.opener = opener or urllib.request.urlopen

    @property
    def configured(self) -> bool:
        return self.token is not None

    def status(self) -> dict:
        return {"configured": self.configured}

    def _build_request(self, content: str, filename: str, is_public: bool):
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "Content-Type": "application/json",
        }
        body = json.dumps({
            "description": GIST_DESCRIPTION.format(filename=filename),
            "public": is_public,
            "files": {filename: {"content": content}},
        }).encode()
        return urllib.request.Request(
            f"{self.api_url}/gists", data=body, headers=headers, method="POST"
        )

    def share(self, content: str, filename: str, is_public: bool = True) -> GistPublication:
        if not self.configured:
            raise NotConfigured()
        if not isinstance(content, str) or not content.strip():
            raise EmptyContent()

        req = self._build_request(content, filename, is_public)
        try:
            with self.opener(req) as resp:
                data = json.loads(resp.read().decode())
        except urllib.error.HTTPError as exc:
            try:
                detail = exc.read().decode("utf-8", errors="replace")
            except Exception:
                detail = ""
            logger.warning("GitHub API error %s: %s", exc.code, detail)
            raise RemoteRejected(exc.code, detail) from exc
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
            logger.warning("Share failed: %s", exc)
            raise RemoteUnavailable(str(exc)) from exc

        try:
            publication = GistPublication(url=str(data["html_url"]), id=str(data["id"]))
        except (KeyError, TypeError) as exc:
            logger.warning("Unexpected GitHub response: %r", data)
            raise RemoteUnavailable("unexpected response from GitHub") from exc

        logger.info("Created %s gist %s for %s", "public" if is_public else "secret", publication.id, filename)
        return publication
