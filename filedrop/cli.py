from __future__ import annotations

import argparse
import os

from . import __version__

EPILOG = """examples:
  filedrop ./document.pdf
  filedrop -p 3000 ./image.jpg
  filedrop --debug ./video.mp4
  filedrop --tunnel ./file.zip
"""


def _port(value: str) -> int:
    try:
        port = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {value!r}") from None
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filedrop",
        description="Share one file over HTTP behind a random link.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("file", nargs="?", help="path of the file to share")
    parser.add_argument(
        "-p",
        "--port",
        type=_port,
        default=os.getenv("FILEDROP_PORT", "8000"),
        help="port to serve the file on (default: %(default)s)",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="enable debug logging")
    parser.add_argument("-t", "--tunnel", action="store_true", help="open a Cloudflare quick tunnel right away")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments; exits with a message on invalid input.

    The bare words `help` and `version` in place of the file act like the
    matching flags.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.file == "help":
        parser.print_help()
        parser.exit(0)
    if args.file == "version":
        print(f"{parser.prog} {__version__}")
        parser.exit(0)
    if not args.file:
        parser.error("missing file path")
    return args
