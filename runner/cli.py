from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the smoke runner."""
    parser = argparse.ArgumentParser(description="filedrop smoke runner")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--token", required=True, help="access token printed by filedrop")
    parser.add_argument("--file", default=None, help="local copy of the shared file, to compare sizes")
    parser.add_argument("--timeout", type=float, default=30.0)
    return parser.parse_args(argv)
