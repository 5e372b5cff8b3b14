"""Immutable data classes shared across lmv."""

import os
from dataclasses import dataclass, field
from pathlib import Path

INPUT_FILE = "file"
INPUT_DIRECTORY = "directory"
INPUT_GLOB = "glob"


@dataclass(frozen=True)
class DiscoveryOptions:
    cwd: Path
    recursive: bool = False
    include_hidden: bool = False


@dataclass(frozen=True)
class ResolvedInput:
    """A CLI token classified as a literal file, a directory or a glob."""
    token: str
    kind: str
    path: str


@dataclass(frozen=True)
class GistPublication:
    url: str
    id: str

    def as_dict(self) -> dict:
        return {"url": self.url, "id": self.id}


@dataclass(frozen=True)
class ServerSession:
    """Everything the server knows about one run. Never mutated after startup."""
    cwd: Path
    files: tuple[Path, ...]
    inputs: tuple[str, ...] = ()
    recursive: bool = False
    include_hidden: bool = False
    port: int = 0
    _index: dict = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_index", {str(p): p for p in self.files})

    @property
    def default_file(self) -> Path | None:
        return self.files[0] if self.files else None

    def lookup(self, raw_path: str | None) -> Path | None:
        """Map a client-supplied path onto a managed file.

        Relative paths are taken from ``cwd``. Anything outside the file
        set maps to None.
        """
        if not raw_path:
            return self.default_file
        candidate = Path(os.path.expanduser(raw_path))
        if not candidate.is_absolute():
            candidate = self.cwd / candidate
        hit = self._index.get(str(candidate))
        if hit is not None:
            return hit
        try:
            return self._index.get(str(candidate.resolve()))
        except (OSError, ValueError):
            return None

    def relative_name(self, path: Path) -> str:
        try:
            return path.relative_to(self.cwd).as_posix()
        except ValueError:
            return str(path)
