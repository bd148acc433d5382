#!/usr/bin/env python3
from __future__ import annotations
import argparse, sys, asyncio, logging
from pathlib import Path
from typing import Optional
from source_rcon import connect, RconError, ConnectionFailed, Connection
from source_rcon.util import env_host, env_port, env_password, env_timeout, settings_from_properties

log = logging.getLogger("rconcli")

# --- terminal mode -----------------------------------------------------------

def run_terminal(conn: Connection, title: str) -> None:
    """Opens the prompt_toolkit RCON console with an output pane + input bar."""
    try:
        from source_rcon.rcon_ui import run_rcon_ui
    except ImportError as e:
        print(f"prompt_toolkit UI not available ({e}); falling back to plain RCON.", flush=True)
        return _fallback_terminal(conn)

    try:
        asyncio.run(run_rcon_ui(conn, title))
    except KeyboardInterrupt:
        pass

def _fallback_terminal(conn: Connection) -> None:
    print("Logged in.\nType 'Q' to disconnect.")
    while True:
        try:
            cmd = input("> ").strip()
        except EOFError:
            print()
            break
        if cmd in ("Q", "/quit"): break
        if not cmd: continue
        try:
            out = conn.exec(cmd)
            if out:
                print(out)
        except ConnectionFailed:
            raise
        except RconError as e:
            print(f"[rcon error] {e}")

# --- argparse ----------------------------------------------------------------

def build_parser():
    p = argparse.ArgumentParser(prog="rcon", description="Source RCON client.")
    p.add_argument("-H", "--host", default=None, help="Server address [env RCON_HOST, default localhost]")
    p.add_argument("-P", "--port", type=int, default=None, help="Server port [env RCON_PORT, default 25575]")
    p.add_argument("-p", "--password", default=None, help="RCON password [env RCON_PASS]")
    p.add_argument("-t", "--terminal", action="store_true", help="Interactive terminal mode")
    p.add_argument("--properties", type=Path, help="Read rcon.port/rcon.password from a server.properties")
    p.add_argument("--timeout", type=float, default=None, help="Socket timeout in seconds [env RCON_TIMEOUT, default 5]")
    p.add_argument("--boundary", choices=["marker", "drain"], default="marker",
                   help="How the end of a multi-packet response is detected")
    p.add_argument("-v", "--verbose", action="store_true", help="Log packets to stderr")
    p.add_argument("command", nargs=argparse.REMAINDER, help="Command to run (one-shot mode)")
    return p

def resolve(args, parser) -> tuple[str, int, str, float]:
    try:
        props = settings_from_properties(args.properties) if args.properties else {}
        host = args.host or env_host()
        port = args.port or props.get("port") or env_port()
        timeout = args.timeout if args.timeout is not None else env_timeout()
    except ValueError as e:
        parser.error(str(e))
    if args.properties and not props.get("enabled"):
        log.warning("enable-rcon is not true in %s", args.properties)
    password = args.password or props.get("password") or env_password()
    if not password:
        parser.error("no password given (use -p, --properties or RCON_PASS)")
    return host, port, password, timeout

def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    command = " ".join(w for w in args.command if w != "--").strip()
    try:
        host, port, password, timeout = resolve(args, parser)
        if not args.terminal and not command:
            parser.error("no command given (pass one, or use -t for terminal mode)")
    except SystemExit as e:
        return e.code

    try:
        with connect(host, port, password, timeout=timeout, boundary=args.boundary) as conn:
            if args.terminal:
                run_terminal(conn, f"{host}:{port}")
            else:
                print(conn.exec(command))
    except RconError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
