"""lmv — Local Markdown Viewer.

Discovers Markdown files, serves them to a browser editor and optionally
shares them as GitHub gists.

Usage:
    lmv README.md
    lmv docs --recursive -p 8080
    lmv 'notes/**/*.md' --hidden --no-open
"""

import argparse
import logging
import sys
import webbrowser
from pathlib import Path

from .discovery import discover
from .errors import DiscoveryError
from .models import DiscoveryOptions, ServerSession
from .server_http import is_server_running, make_server, run
from .settings import DEFAULT_HOST, DEFAULT_PORT, LOG_LEVELS, load_settings
from .share import ShareGateway

logger = logging.getLogger(__name__)

EPILOG = """\
environment:
  GITHUB_TOKEN            enable "Share as Gist"
  LMV_GITHUB_API_URL      GitHub API base URL (default https://api.github.com)
  LMV_LOG_LEVEL           default log level

examples:
  lmv README.md
  lmv docs/guide.md -p 8080
  lmv docs --recursive
  lmv 'docs/**/*.md'
  GITHUB_TOKEN=ghp_xxx lmv README.md
"""


class ArgumentParser(argparse.ArgumentParser):
    """Exit with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def _port(value: str) -> int:
    try:
        port = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {value!r}")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def create_arg_parser(default_log_level: str = "INFO") -> ArgumentParser:
    parser = ArgumentParser(
        prog="lmv",
        description="Local Markdown Viewer: preview and edit Markdown files in your browser.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("inputs", nargs="*", metavar="input",
                        help="Markdown file, directory or quoted glob pattern")
    parser.add_argument("-p", "--port", type=_port, default=DEFAULT_PORT,
                        help=f"Port to run server on (default: {DEFAULT_PORT})")
    parser.add_argument("--no-open", action="store_true", help="Don't auto-open the browser")
    parser.add_argument("--recursive", action="store_true", help="Descend into subdirectories")
    parser.add_argument("--hidden", action="store_true", help="Include dotfiles and dot-directories")
    parser.add_argument("--log-level", type=str.upper, default=default_log_level, choices=LOG_LEVELS)
    return parser


def open_browser(url: str):
    try:
        webbrowser.open(url)
    except webbrowser.Error as exc:
        logger.warning("Could not open browser: %s", exc)


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    settings = load_settings()
    parser = create_arg_parser(settings.log_level)

    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    if not args.inputs:
        parser.error("no input specified")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    cwd = Path.cwd().resolve()
    options = DiscoveryOptions(cwd=cwd, recursive=args.recursive, include_hidden=args.hidden)
    try:
        files = discover(args.inputs, options)
    except DiscoveryError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        if exc.suggestion:
            print(f"  {exc.suggestion}", file=sys.stderr)
        return 1

    url = f"http://localhost:{args.port}"
    if is_server_running(args.port):
        print(f"lmv is already running at {url}")
        print("The running instance keeps the files it was started with; "
              "stop it to serve: " + " ".join(args.inputs))
        if not args.no_open:
            open_browser(url)
        return 0

    session = ServerSession(
        cwd=cwd,
        files=files,
        inputs=tuple(args.inputs),
        recursive=args.recursive,
        include_hidden=args.hidden,
        port=args.port,
    )
    share = ShareGateway(settings.github_token, api_url=settings.github_api_url)

    try:
        server = make_server(session, share, host=DEFAULT_HOST)
    except OSError as exc:
        print(f"Error: cannot listen on port {args.port}: {exc.strerror or exc}", file=sys.stderr)
        return 1

    viewing = "\n".join(f"    {session.relative_name(p)}" for p in files)
    print(f"\n  Viewing:\n{viewing}\n  Server:  {url}\n  Sharing: "
          f"{'enabled' if share.configured else 'disabled (set GITHUB_TOKEN)'}\n\n"
          f"  Press Ctrl+C to stop\n")

    if not args.no_open:
        open_browser(url)

    run(server)
    return 0


if __name__ == "__main__":
    sys.exit(main())
