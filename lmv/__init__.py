"""Local Markdown Viewer: discover, preview, edit and share Markdown files."""

from .discovery import discover, expand_glob, is_hidden, is_markdown, resolve_input, scan_directory
from .files import FileGateway
from .models import DiscoveryOptions, GistPublication, ServerSession
from .share import ShareGateway

__version__ = "0.2.0"
