"""Markdown discovery: turn CLI inputs into a sorted, deduplicated file set.

Inputs may be literal files, directories or glob patterns. Literal files are
taken as given. Directory scans and glob expansion both filter hidden entries
through ``is_hidden`` and keep only Markdown extensions.
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Sequence

import pathspec

from .errors import DiscoveryError, InputNotFound, NoFilesFound
from .models import (
    INPUT_DIRECTORY,
    INPUT_FILE,
    INPUT_GLOB,
    DiscoveryOptions,
    ResolvedInput,
)

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = (".md", ".markdown")
GLOB_CHARS = frozenset("*?[")


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def is_markdown(path) -> bool:
    return Path(path).suffix.lower() in MARKDOWN_EXTENSIONS


def has_glob_magic(token: str) -> bool:
    return any(c in GLOB_CHARS for c in token)


def _absolute(token: str, cwd: Path) -> Path:
    path = Path(os.path.expanduser(token))
    if not path.is_absolute():
        path = cwd / path
    return path


def resolve_input(token: str, cwd: Path) -> ResolvedInput:
    """Classify one CLI token. Raises InputNotFound for a missing literal path."""
    path = _absolute(token, cwd)
    try:
        if path.is_file():
            return ResolvedInput(token, INPUT_FILE, str(path))
        if path.is_dir():
            return ResolvedInput(token, INPUT_DIRECTORY, str(path))
    except OSError as exc:
        raise DiscoveryError(f"Cannot access input: {token} ({exc})") from exc

    if has_glob_magic(token):
        return ResolvedInput(token, INPUT_GLOB, str(path))
    raise InputNotFound(token)


def _raise_walk_error(exc: OSError):
    raise DiscoveryError(f"Cannot read directory: {exc.filename} ({exc.strerror})") from exc


def _walk(root: Path, include_hidden: bool, max_depth: int | None) -> Iterator[Path]:
    """Yield files under *root*, pruning hidden entries and excess depth.

    ``max_depth`` counts directory levels below *root*: 0 means root only.
    """
    for current, dirs, files in os.walk(root, onerror=_raise_walk_error):
        current_path = Path(current)
        depth = len(current_path.relative_to(root).parts)

        if max_depth is not None and depth >= max_depth:
            dirs[:] = []
        elif not include_hidden:
            dirs[:] = [d for d in dirs if not is_hidden(d)]
        dirs.sort()

        for name in sorted(files):
            if not include_hidden and is_hidden(name):
                continue
            yield current_path / name


def scan_directory(directory: Path, options: DiscoveryOptions) -> list[Path]:
    """Markdown files in *directory*; one level unless ``options.recursive``."""
    max_depth = None if options.recursive else 0
    return [
        path
        for path in _walk(directory, options.include_hidden, max_depth)
        if is_markdown(path)
    ]


def _split_glob(pattern: str) -> tuple[Path, str]:
    """Split an absolute pattern into its literal base directory and the rest."""
    parts = Path(pattern).parts
    base_parts = []
    for i, part in enumerate(parts):
        if has_glob_magic(part):
            return Path(*base_parts), "/".join(parts[i:])
        base_parts.append(part)
    # No magic at all; caller only sends patterns with magic.
    return Path(*base_parts[:-1]), base_parts[-1]


def expand_glob(pattern: str, options: DiscoveryOptions) -> list[Path]:
    """Expand an absolute glob pattern against the filesystem.

    Hidden entries below the literal base directory are dropped unless
    ``options.include_hidden``; the match itself uses gitignore semantics
    anchored at the base, so ``*`` stays within one path segment.
    """
    base, remainder = _split_glob(pattern)
    if not base.is_dir():
        logger.debug("Glob base %s does not exist; nothing to expand", base)
        return []

    matcher = _glob_matcher(remainder)
    max_depth = None if "**" in remainder else remainder.count("/")

    matches = []
    for path in _walk(base, options.include_hidden, max_depth):
        if is_markdown(path) and matcher(path.relative_to(base).as_posix()):
            matches.append(path)
    return matches


def _glob_matcher(remainder: str):
    """Predicate matching a relative posix path against a glob remainder.

    gitignore patterns are searched as prefixes, so a pattern also matches
    everything below a matching directory. Only a trailing ``**`` should
    reach that far; otherwise the whole path must match.
    """
    spec = pathspec.PathSpec.from_lines("gitignore", ["/" + remainder])
    if remainder.rsplit("/", 1)[-1] == "**":
        return spec.match_file
    regex = spec.patterns[0].regex
    return lambda rel: regex.fullmatch(rel) is not None


def discover(inputs: Sequence[str], options: DiscoveryOptions) -> tuple[Path, ...]:
    """Resolve *inputs* into the session file set.

    Raises DiscoveryError (or its subclasses InputNotFound, NoFilesFound).
    """
    cwd = Path(options.cwd)
    found: dict[str, Path] = {}

    for token in inputs:
        resolved = resolve_input(token, cwd)

        if resolved.kind == INPUT_FILE:
            candidates = [Path(resolved.path)]
        elif resolved.kind == INPUT_DIRECTORY:
            candidates = scan_directory(Path(resolved.path), options)
        else:
            candidates = expand_glob(resolved.path, options)
            if not candidates:
                logger.info("Glob matched no Markdown files: %s", token)

        for candidate in candidates:
            try:
                canonical = candidate.resolve()
            except OSError as exc:
                raise DiscoveryError(f"Cannot resolve path: {candidate} ({exc})") from exc
            found.setdefault(str(canonical), canonical)

        logger.debug("Input %r (%s) -> %d file(s)", token, resolved.kind, len(candidates))

    if not found:
        raise NoFilesFound(inputs)

    return tuple(found[key] for key in sorted(found))
