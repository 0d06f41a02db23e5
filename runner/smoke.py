#!/usr/bin/env python3
"""Smoke runner checking a live filedrop instance end-to-end.

Steps:
- wait for the info page to answer
- check the info page, the download and the 404 fallback
- emit a compact summary and exit code
"""
from __future__ import annotations

import asyncio
import sys

import httpx

from filedrop.logging_conf import get_logger, setup_logging
from runner.cli import parse_args
from runner.client import check_download, check_info_page, check_not_found, wait_for_server
from runner.utils import expected_size, summarize

logger = get_logger("runner")


async def run_smoke(
    *, base_url: str, token: str, local_file: str | None = None, timeout_s: float = 30.0
) -> int:
    size = expected_size(local_file)
    await wait_for_server(base_url, token, timeout_s=timeout_s)
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s) as client:
        checks = [
            await check_info_page(client, token),
            await check_download(client, token, size),
            await check_not_found(client),
        ]
    summary, exit_code = summarize(checks)
    logger.info("runner.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    setup_logging(fmt="json")
    args = parse_args(sys.argv[1:] if argv is None else argv)
    code = asyncio.run(
        run_smoke(
            base_url=args.base_url,
            token=args.token,
            local_file=args.file,
            timeout_s=args.timeout,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
