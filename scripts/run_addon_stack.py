#!/usr/bin/env python3
"""Convenience runner for the addon server and, locally, its public tunnel."""
from __future__ import annotations

import argparse
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.addon_api.services.tunnel_service import (  # noqa: E402
    TunnelNotRunningError,
    TunnelService,
    TunnelServiceError,
)
from backend.addon_api.settings import AddonSettings  # noqa: E402


def parse_args(settings: AddonSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Start the catalog addon server. When ENVIRONMENT=local an ngrok tunnel is "
            "opened once the manifest answers, exposing the addon publicly."
        )
    )
    parser.add_argument("--port", type=int, default=settings.port, help="Port for the addon server")
    parser.add_argument(
        "--tunnel",
        dest="tunnel",
        action="store_true",
        default=settings.is_local,
        help="Force the ngrok tunnel on (default: only when ENVIRONMENT=local)",
    )
    parser.add_argument(
        "--no-tunnel",
        dest="tunnel",
        action="store_false",
        help="Never start the ngrok tunnel",
    )
    parser.add_argument(
        "--ready-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the manifest before giving up on the tunnel",
    )
    return parser.parse_args()


def log(message: str) -> None:
    print(f"[addon-stack] {message}")


def build_server_command() -> list[str]:
    return [sys.executable, "-m", "backend.addon_api"]


def wait_for_manifest(port: int, timeout: float) -> bool:
    url = f"http://localhost:{port}/manifest.json"
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            response = httpx.get(url, timeout=1.0)
            if response.status_code == 200:
                return True
        except httpx.HTTPError:  # pragma: no cover - network dependent
            pass
        time.sleep(1.0)
    return False


def shutdown(server: subprocess.Popen, tunnel: TunnelService | None) -> None:
    if tunnel is not None:
        try:
            tunnel.stop_process()
        except TunnelNotRunningError:
            # Already stopped, or the supervisor exited on its own.
            pass
    if server.poll() is None:
        server.terminate()
        try:
            server.wait(timeout=10)
        except subprocess.TimeoutExpired:
            server.kill()


def main() -> None:
    settings = AddonSettings()
    args = parse_args(settings)

    env = os.environ.copy()
    pythonpath = env.get("PYTHONPATH", "")
    if pythonpath:
        env["PYTHONPATH"] = f"{PROJECT_ROOT}{os.pathsep}{pythonpath}"
    else:
        env["PYTHONPATH"] = str(PROJECT_ROOT)
    env["PORT"] = str(args.port)

    log(f"Starting addon server on port {args.port}...")
    log(f"Environment: {settings.environment}{' (with tunnel)' if args.tunnel else ' (no tunnel)'}")
    server = subprocess.Popen(build_server_command(), cwd=str(PROJECT_ROOT), env=env)

    tunnel: TunnelService | None = None

    def _handler(signum: int, _frame) -> None:
        log(f"Received signal {signum}; shutting down...")
        shutdown(server, tunnel)
        sys.exit(0)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    if args.tunnel:
        if wait_for_manifest(args.port, args.ready_timeout):
            tunnel = TunnelService(
                port=args.port,
                authtoken=settings.ngrok_authtoken,
                domain=settings.ngrok_domain,
                region=settings.ngrok_region,
            )
            try:
                tunnel.start_process()
            except TunnelServiceError as exc:
                log(f"Tunnel unavailable ({exc}); continuing with the local server only.")
                tunnel = None
            else:
                public_url = tunnel.wait_for_public_url(args.ready_timeout)
                if public_url:
                    log(f"Add this URL to your client: {public_url}")
        else:
            log("Server did not become ready in time; skipping tunnel.")

    try:
        raise SystemExit(server.wait())
    finally:
        shutdown(server, tunnel)


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
