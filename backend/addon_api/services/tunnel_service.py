"""Supervision of the optional ngrok tunnel exposing the local addon port."""
from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

INITIAL_RESTART_DELAY = 2.0
MAX_RESTART_DELAY = 30.0

_URL_PATTERNS = (
    re.compile(r'"(?:public_)?url":\s*"(https://[^"]+)"', re.IGNORECASE),
    re.compile(r"\burl=(https://\S+)"),
    re.compile(r"Forwarding\s+(https://\S+)\s+->", re.IGNORECASE),
    re.compile(r"(https://[a-z0-9-]+\.ngrok(?:-[a-z]+)?\.(?:io|app|dev))", re.IGNORECASE),
)


def restart_delay(attempt: int, *, initial: float = INITIAL_RESTART_DELAY, maximum: float = MAX_RESTART_DELAY) -> float:
    """Exponential backoff for the ``attempt``-th consecutive restart (1-based)."""

    return min(initial * 2 ** max(attempt - 1, 0), maximum)


def extract_public_url(line: str) -> str | None:
    """Return the public tunnel URL announced on an ngrok output line, if any."""

    for pattern in _URL_PATTERNS:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


@dataclass(slots=True)
class TunnelProcessStatus:
    """Represents the lifecycle state of the managed tunnel process."""

    running: bool
    pid: int | None
    exit_code: int | None
    public_url: str | None = None
    restarts: int = 0


class TunnelServiceError(RuntimeError):
    """Raised when the tunnel process cannot be launched or managed."""


class TunnelAlreadyRunningError(TunnelServiceError):
    """Raised when attempting to start a tunnel that is already running."""


class TunnelNotRunningError(TunnelServiceError):
    """Raised when attempting to stop a tunnel that is not running."""


class TunnelService:
    """Keep an ngrok child process alive for a local port.

    A supervisor thread reads the tunnel output to capture the public URL and
    relaunches ngrok whenever it exits, backing off exponentially between
    consecutive failures until :meth:`stop_process` is called. The auth token
    travels in the child environment rather than on the command line.
    """

    def __init__(
        self,
        *,
        port: int,
        authtoken: str | None = None,
        domain: str | None = None,
        region: str = "us",
        executable: str = "ngrok",
        initial_restart_delay: float = INITIAL_RESTART_DELAY,
        max_restart_delay: float = MAX_RESTART_DELAY,
    ) -> None:
        self._port = port
        self._authtoken = authtoken
        self._domain = domain
        self._region = region
        self._executable = executable
        self._initial_restart_delay = initial_restart_delay
        self._max_restart_delay = max_restart_delay
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._url_event = threading.Event()
        self._process: subprocess.Popen[str] | None = None
        self._supervisor: threading.Thread | None = None
        self._last_exit_code: int | None = None
        self._public_url: str | None = None
        self._failures = 0
        self.launch_count = 0

    def build_command(self) -> list[str]:
        """Return the ngrok command line for the configured port."""

        command = [self._executable, "http", str(self._port), "--log", "stdout"]
        if self._domain:
            command.extend(["--domain", self._domain])
        if self._region and self._region != "us":
            command.extend(["--region", self._region])
        return command

    def build_env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self._authtoken:
            env["NGROK_AUTHTOKEN"] = self._authtoken
        return env

    def public_url(self) -> str | None:
        """Return the manifest URL clients should install.

        Prefers the URL announced by ngrok and falls back to the reserved
        domain.
        """

        with self._lock:
            base = self._public_url
        if base is None and self._domain:
            base = f"https://{self._domain}"
        if base is None:
            return None
        return f"{base.rstrip('/')}/manifest.json"

    def wait_for_public_url(self, timeout: float) -> str | None:
        self._url_event.wait(timeout)
        return self.public_url()

    def start_process(self) -> TunnelProcessStatus:
        """Launch ngrok and its supervisor if not already running."""

        with self._lock:
            if self._supervisor is not None and self._supervisor.is_alive():
                raise TunnelAlreadyRunningError("Tunnel process already running")

            if shutil.which(self._executable) is None:
                raise TunnelServiceError(f"{self._executable} executable not found on PATH")
            if not self._authtoken:
                logger.warning("NGROK_AUTHTOKEN not set; the tunnel will run with ngrok's anonymous limits.")

            self._stop_event.clear()
            self._url_event.clear()
            self._public_url = None
            self._failures = 0
            self._last_exit_code = None
            process = self._spawn()
            self._supervisor = threading.Thread(
                target=self._supervise, args=(process,), name="tunnel-supervisor", daemon=True
            )
            self._supervisor.start()
            return TunnelProcessStatus(running=True, pid=process.pid, exit_code=None)

    def _spawn(self) -> subprocess.Popen[str]:
        """Start one ngrok process; caller holds the lock."""

        command = self.build_command()
        try:
            process = subprocess.Popen(
                command,
                env=self.build_env(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            raise TunnelServiceError(f"Failed to launch tunnel: {exc}") from exc

        self._process = process
        self.launch_count += 1
        if self.launch_count == 1:
            logger.info("Starting ngrok with args: %s", " ".join(command[1:]))
        else:
            logger.info("Restarting ngrok (attempt %d)...", self.launch_count)
        return process

    def _supervise(self, process: subprocess.Popen[str]) -> None:
        while True:
            self._read_output(process)
            exit_code = process.wait()
            with self._lock:
                self._last_exit_code = exit_code
                if self._process is process:
                    self._process = None
                if self._stop_event.is_set():
                    return
                self._failures += 1
                if exit_code == 0:
                    delay = self._initial_restart_delay
                else:
                    delay = restart_delay(
                        self._failures,
                        initial=self._initial_restart_delay,
                        maximum=self._max_restart_delay,
                    )
            logger.warning("Ngrok exited with code %s; reconnecting in %.1f seconds", exit_code, delay)
            if self._stop_event.wait(delay):
                return
            with self._lock:
                if self._stop_event.is_set():
                    return
                try:
                    process = self._spawn()
                except TunnelServiceError as exc:
                    logger.error("%s", exc)
                    self._failures += 1
                    continue

    def _read_output(self, process: subprocess.Popen[str]) -> None:
        if process.stdout is None:
            return
        for line in process.stdout:
            line = line.rstrip()
            if not line:
                continue
            logger.debug("ngrok: %s", line)
            url = extract_public_url(line)
            if url is not None:
                with self._lock:
                    reconnected = self._public_url is not None
                    self._public_url = url
                    self._failures = 0
                self._url_event.set()
                if reconnected:
                    logger.info("Tunnel reconnected. URL: %s", url)
                else:
                    logger.info("Public tunnel URL: %s/manifest.json", url)
            elif "ERR_NGROK" in line or "authentication failed" in line.lower():
                logger.error("Ngrok error: %s", line)

    def stop_process(self, *, timeout: float = 10.0) -> TunnelProcessStatus:
        """Stop supervising and terminate the tunnel process."""

        with self._lock:
            supervisor = self._supervisor
            if supervisor is None or not supervisor.is_alive():
                self._supervisor = None
                raise TunnelNotRunningError("Tunnel process is not running")
            self._stop_event.set()
            process = self._process

        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait(timeout=timeout)
        supervisor.join(timeout)

        with self._lock:
            self._supervisor = None
            self._process = None
            if process is not None:
                self._last_exit_code = process.returncode
            logger.info("Tunnel stopped with exit code %s", self._last_exit_code)
            return TunnelProcessStatus(
                running=False,
                pid=None,
                exit_code=self._last_exit_code,
                public_url=self._public_url,
                restarts=max(self.launch_count - 1, 0),
            )

    def process_status(self) -> TunnelProcessStatus:
        """Return the current status of the supervised tunnel."""

        with self._lock:
            supervised = self._supervisor is not None and self._supervisor.is_alive()
            process = self._process
            running = supervised and process is not None and process.poll() is None
            return TunnelProcessStatus(
                running=running,
                pid=process.pid if running and process is not None else None,
                exit_code=None if running else self._last_exit_code,
                public_url=self._public_url,
                restarts=max(self.launch_count - 1, 0),
            )

    @property
    def supervising(self) -> bool:
        with self._lock:
            return self._supervisor is not None and self._supervisor.is_alive()
