"""Error taxonomy and structured API error payloads."""


def error_response(code: str, message: str, suggestion: str | None = None):
    """Build a structured API error payload."""
    payload = {"error": {"code": code, "message": message}}
    if suggestion:
        payload["error"]["suggestion"] = suggestion
    return payload


class LmvError(Exception):
    """Base class for errors that map onto an API error payload."""

    code = "INTERNAL_ERROR"
    status = 500
    suggestion: str | None = None

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(message)
        self.message = message
        if suggestion is not None:
            self.suggestion = suggestion

    def to_response(self):
        return self.status, error_response(self.code, self.message, self.suggestion)


# -- Discovery (fatal at startup) ------------------------------------------


class DiscoveryError(LmvError):
    code = "DISCOVERY_FAILED"


class InputNotFound(DiscoveryError):
    code = "INPUT_NOT_FOUND"

    def __init__(self, token: str):
        super().__init__(f"Input not found: {token}")
        self.token = token


class NoFilesFound(DiscoveryError):
    code = "NO_FILES_FOUND"

    def __init__(self, inputs=()):
        joined = ", ".join(inputs) if inputs else "(none)"
        super().__init__(
            f"No Markdown files found for: {joined}",
            "Pass a .md file, a directory containing .md files, or a quoted glob.",
        )
        self.inputs = tuple(inputs)


# -- File access -----------------------------------------------------------


class NotFound(LmvError):
    code = "NOT_FOUND"
    status = 404

    def __init__(self, path):
        super().__init__(f"File not found: {path}")
        self.path = path


class ReadFailure(LmvError):
    code = "READ_FAILED"

    def __init__(self, path):
        super().__init__(f"Failed to read file: {path}")
        self.path = path


class InvalidContent(LmvError):
    code = "INVALID_CONTENT"
    status = 400
    suggestion = "Send JSON with a string 'content' field."


class WriteFailure(LmvError):
    code = "WRITE_FAILED"

    def __init__(self, path):
        super().__init__(f"Failed to write file: {path}")
        self.path = path


# -- Sharing ---------------------------------------------------------------


class NotConfigured(LmvError):
    code = "NOT_CONFIGURED"
    status = 400

    def __init__(self):
        super().__init__(
            "GITHUB_TOKEN not configured",
            "Set GITHUB_TOKEN in your environment to enable sharing.",
        )


class EmptyContent(LmvError):
    code = "EMPTY_CONTENT"
    status = 400

    def __init__(self):
        super().__init__("Content is required", "Write something before sharing.")


class RemoteRejected(LmvError):
    code = "REMOTE_REJECTED"

    def __init__(self, upstream_status: int, body: str = ""):
        super().__init__(f"GitHub rejected the gist (HTTP {upstream_status})")
        self.upstream_status = upstream_status
        self.body = body
        self.status = upstream_status if 400 <= upstream_status <= 599 else 500


class RemoteUnavailable(LmvError):
    code = "REMOTE_UNAVAILABLE"
    status = 500

    def __init__(self, reason: str = ""):
        message = "Failed to create gist"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, "Check your network connection and try again.")
        self.reason = reason
