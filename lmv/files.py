"""Read and write a single managed Markdown file."""

import logging
import os
import tempfile
from pathlib import Path

from .errors import InvalidContent, NotFound, ReadFailure, WriteFailure

logger = logging.getLogger(__name__)


def atomic_write(path: Path, content: str, encoding: str = "utf-8"):
    """Write content atomically by writing to a temp file then renaming."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as fh:
            fh.write(content)
        try:
            os.chmod(tmp_path, path.stat().st_mode & 0o7777)
        except OSError:
            pass
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class FileGateway:
    """Existence is checked on every call: the file set can go stale."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def read(self, path: Path) -> str:
        path = Path(path)
        if not path.is_file():
            raise NotFound(path)
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError as exc:
            raise NotFound(path) from exc
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Read failed for %s: %s", path, exc)
            raise ReadFailure(path) from exc

    def write(self, path: Path, content) -> None:
        if not isinstance(content, str):
            raise InvalidContent("'content' must be a string")
        path = Path(path)
        if not path.is_file():
            raise NotFound(path)
        try:
            atomic_write(path, content, encoding=self.encoding)
        except (OSError, UnicodeEncodeError) as exc:
            logger.warning("Write failed for %s: %s", path, exc)
            raise WriteFailure(path) from exc
        logger.info("Saved %s (%d chars)", path, len(content))
