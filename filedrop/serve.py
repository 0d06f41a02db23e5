#!/usr/bin/env python3
"""Command-line entry point wiring the file server and the tunnel.

Steps:
- validate the file and mint its access token
- ask whether to open a tunnel (interactive terminals without --tunnel)
- start the file server (the port is live before the tunnel starts)
- optionally open a quick tunnel and print the public link
- serve until interrupted, then stop the tunnel and log a visitor summary
"""
from __future__ import annotations

import asyncio
import sys

from .cli import parse_args
from .domain.errors import ConfigError, TunnelError, TunnelUnavailable
from .domain.files import ServedFile, load_served_file
from .logging_conf import get_logger, setup_logging
from .main import FileServer
from .service.ledger import ClientLedger
from .service.tunnel import TunnelProcess

logger = get_logger("filedrop.serve")

INSTALL_URL = "https://developers.cloudflare.com/cloudflare-one/connections/connect-networks/downloads/"
TUNNEL_PROMPT = "Do you want to set up a Cloudflare tunnel to your file? (y/n): "


def install_instructions(platform: str = sys.platform) -> str:
    lines = ["Please install the cloudflared CLI first."]
    if platform == "darwin":
        lines += ["On macOS:", "  brew install cloudflared"]
    elif platform == "win32":
        lines += ["On Windows:", "  winget install --id Cloudflare.cloudflared"]
    else:
        lines.append("On Linux, follow the installation instructions in the link below.")
    lines.append(f"Full installation instructions: {INSTALL_URL}")
    return "\n".join(lines)


def port_forward_hint(port: int) -> str:
    return (
        "To make this file reachable from outside your network, forward port "
        f"{port} to this machine's IP address, or rerun with --tunnel."
    )


def public_links(base_url: str, served: ServedFile) -> str:
    return (
        "Your file is now accessible at:\n\n"
        f"  {base_url}{served.info_path}\n"
        f"  {base_url}{served.download_path}  (direct download)\n\n"
        "Share this link to let them download your file!"
    )


def ask_for_tunnel() -> bool:
    """Ask on the terminal whether to open a tunnel; no when not interactive.

    Runs before the event loop starts so Ctrl-C at the prompt interrupts the
    blocking `input()` directly.
    """
    if not sys.stdin.isatty():
        return False
    try:
        answer = input(TUNNEL_PROMPT)
    except EOFError:
        return False
    return answer.strip().lower().startswith("y")


async def open_tunnel(tunnel: TunnelProcess, port: int, served: ServedFile, *, required: bool) -> str | None:
    """Open the tunnel and print the public links.

    Returns the public base URL, or None when the tunnel could not be opened
    and the file stays reachable locally only.

    Raises:
        TunnelUnavailable: if the executable is missing and `required`.
    """
    if not await tunnel.probe_available():
        print(install_instructions(), file=sys.stderr)
        if required:
            raise TunnelUnavailable(f"{tunnel.command[0]} is not installed")
        return None

    print("Starting Cloudflare tunnel...")
    try:
        url = (await tunnel.resolve_url(port)).unwrap()
    except TunnelUnavailable:
        if required:
            raise
        print(install_instructions(), file=sys.stderr)
        return None
    except TunnelError as e:
        logger.error("tunnel failed: %s", e, extra={"event": "tunnel_failed", "code": e.code})
        print(f"Tunnel failed ({e}). The file is still served locally.", file=sys.stderr)
        return None

    print(f"\n{public_links(url, served)}\n")
    return url


def make_tunnel() -> TunnelProcess:
    try:
        return TunnelProcess()
    except ValueError as e:
        raise ConfigError(str(e)) from e


async def run(
    served: ServedFile,
    port: int,
    tunnel: TunnelProcess,
    *,
    want_tunnel: bool = False,
    tunnel_required: bool = False,
) -> int:
    ledger = ClientLedger()
    server = FileServer(served, ledger)
    await server.start(port)

    try:
        print(f"\nServing {served.display_name} on {server.local_url}\n")
        if want_tunnel:
            await open_tunnel(tunnel, server.port, served, required=tunnel_required)
        else:
            print(f"\n{port_forward_hint(server.port)}\n")
        await server.wait_closed()
    except TunnelUnavailable as e:
        logger.error("%s", e, extra={"event": "tunnel_unavailable", "code": e.code})
        return 1
    finally:
        await tunnel.aclose()
        await server.stop()
        logger.info(
            "served %d client(s)",
            len(ledger),
            extra={
                "event": "summary",
                "clients": [r.model_dump() for r in ledger.snapshot()],
            },
        )
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args.debug:
        setup_logging("DEBUG")
    else:
        setup_logging()

    try:
        served = load_served_file(args.file)
        tunnel = make_tunnel()
        want_tunnel = args.tunnel or ask_for_tunnel()
        code = asyncio.run(
            run(served, args.port, tunnel, want_tunnel=want_tunnel, tunnel_required=args.tunnel)
        )
    except ConfigError as e:
        print(f"filedrop: {e}", file=sys.stderr)
        code = 1
    except KeyboardInterrupt:
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
