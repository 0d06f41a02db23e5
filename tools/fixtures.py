#!/usr/bin/env python3
"""Write deterministic sample files to share during manual or smoke runs."""
from __future__ import annotations

import hashlib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
FX = ROOT / "fixtures"


def _pseudo_random(size: int, seed: bytes) -> bytes:
    """Deterministic incompressible-looking bytes, built from chained SHA-256."""
    out = bytearray()
    block = seed
    while len(out) < size:
        block = hashlib.sha256(block).digest()
        out += block
    return bytes(out[:size])


FILES = [
    (FX / "notes.txt", b"hello from filedrop\n"),
    (FX / "empty.bin", b""),
    (FX / "one-megabyte.bin", _pseudo_random(1_048_576, b"filedrop-1m")),
    (FX / "archive.zip.part", _pseudo_random(2_621_440, b"filedrop-2.5m")),
]


def main() -> None:
    FX.mkdir(parents=True, exist_ok=True)
    for path, data in FILES:
        path.write_bytes(data)
    print("Created fixtures:")
    for path, data in FILES:
        print(f" - {path.relative_to(ROOT)} ({len(data)} bytes)")


if __name__ == "__main__":
    main()
