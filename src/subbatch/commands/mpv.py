"""Live subtitle shifting against a running mpv.

mpv is started with a JSON IPC server on a UNIX domain socket. Every key press
retimes the subtitle file on disk and asks mpv to reload it, so the effect is
visible right away.
"""

from __future__ import annotations

import json
import logging
import shutil
import socket
import subprocess
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from ..config import GlobalConfig, MatchFilesConfig, TimeConfig, build_scan_options
from ..errors import MpvError, ToolNotFoundError
from ..extensions import RETIMABLE_EXTENSIONS
from ..logging_utils import render_fields_block
from ..models import MatchInfo, SecondaryExtensionPolicy
from ..scanner import scan
from .retime import shift_subtitles
from .util import validate_sub_and_file_matches

LOGGER = logging.getLogger(__name__)

CONNECT_ATTEMPTS = 10
CONNECT_INTERVAL = 0.2
REQUEST_ID = 45782199

KEY_SHIFTS = {
    "1": -500,
    "2": -250,
    "3": -50,
    "4": 50,
    "5": 250,
    "6": 500,
}
QUIT_KEYS = frozenset({"q", "quit", "exit"})


class MpvConnection:
    """JSON IPC client for one mpv instance."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")

    @classmethod
    def connect(
        cls,
        socket_path: Path,
        *,
        attempts: int = CONNECT_ATTEMPTS,
        interval: float = CONNECT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> MpvConnection:
        """Connect to mpv's IPC socket, retrying while mpv is still starting up.

        Raises:
            MpvError: if the socket could not be reached after ``attempts`` tries.
        """
        if not hasattr(socket, "AF_UNIX"):
            raise MpvError("mpv IPC requires UNIX domain sockets, which this platform lacks")

        last_error: Optional[OSError] = None
        for attempt in range(1, attempts + 1):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.connect(str(socket_path))
            except OSError as exc:
                sock.close()
                last_error = exc
                LOGGER.debug("mpv socket not ready (attempt %d/%d): %s", attempt, attempts, exc)
                if attempt < attempts:
                    sleep(interval)
                continue
            return cls(sock)
        raise MpvError(f"failed to connect to mpv at {socket_path}: {last_error}")

    def send(self, command: list[Any], request_id: Optional[int] = None) -> None:
        payload: dict[str, Any] = {"command": command}
        if request_id is not None:
            payload["request_id"] = request_id
        self._sock.sendall(json.dumps(payload).encode("utf-8") + b"\n")

    def send_wait(self, command: list[Any]) -> dict[str, Any]:
        """Send ``command`` and return mpv's reply to it, skipping unrelated events."""
        self.send(command, request_id=REQUEST_ID)
        while True:
            line = self._reader.readline()
            if not line:
                raise MpvError("mpv closed the IPC connection")
            try:
                message = json.loads(line)
            except ValueError:
                LOGGER.debug("Ignoring malformed mpv message: %r", line)
                continue
            if isinstance(message, dict) and message.get("request_id") == REQUEST_ID:
                return message

    def is_alive(self) -> bool:
        try:
            self.send(["get_version"])
        except OSError:
            return False
        return True

    def close(self) -> None:
        self._reader.close()
        self._sock.close()


def _controls_table() -> Table:
    table = Table(title="mpv subtitle shift", show_header=True, header_style="bold")
    table.add_column("Key", style="bright_yellow", no_wrap=True)
    table.add_column("Shift")
    for key, shift in KEY_SHIFTS.items():
        table.add_row(key, f"{shift:+d}ms")
    table.add_row("q", "quit")
    return table


class MpvCommand:
    def __init__(self, global_conf: GlobalConfig, conf: TimeConfig, console: Console) -> None:
        # conf.timing is unused; encoding and fps drive every shift
        self.global_conf = global_conf
        self.conf = conf
        self.console = console

    def first_match(self) -> MatchInfo:
        match_conf = MatchFilesConfig(secondary_extension_policy=SecondaryExtensionPolicy.NEVER)
        matches = scan(build_scan_options(self.global_conf, match_conf))
        validate_sub_and_file_matches(self.global_conf, matches, RETIMABLE_EXTENSIONS)
        return matches[0]

    def run(self) -> int:
        """Returns the total shift applied, in milliseconds."""
        mpv = shutil.which("mpv")
        if mpv is None:
            raise ToolNotFoundError("could not find `mpv` in PATH. Is mpv installed?")
        match = self.first_match()

        with tempfile.TemporaryDirectory(prefix="sub-batch-") as tmp:
            socket_path = Path(tmp) / "mpv.sock"
            command = [
                mpv,
                str(match.video_path),
                f"--sub-file={match.sub_path}",
                f"--input-ipc-server={socket_path}",
            ]
            LOGGER.debug(render_fields_block("Starting mpv", {"Command": " ".join(command)}))
            process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            try:
                connection = MpvConnection.connect(socket_path)
                try:
                    total = self.shift_loop(connection, match.sub_path)
                finally:
                    connection.close()
            finally:
                process.terminate()
                process.wait()

        self.console.print(f"total shift: {total}ms", highlight=False)
        return total

    def shift_loop(self, connection: MpvConnection, subtitle: Path) -> int:
        self.console.print(_controls_table())
        total = 0
        while True:
            try:
                key = self.console.input(f"shift {total:+d}ms > ").strip().lower()
            except EOFError:
                break
            if key in QUIT_KEYS or not connection.is_alive():
                break
            shift = KEY_SHIFTS.get(key)
            if shift is None:
                self.console.print(f"unknown key: {key!r}", highlight=False)
                continue
            self.shift_subtitle(connection, subtitle, shift)
            total += shift
        return total

    def shift_subtitle(self, connection: MpvConnection, subtitle: Path, shift: int) -> None:
        shift_subtitles([subtitle], TimeConfig(timing=shift, encoding=self.conf.encoding, fps=self.conf.fps))
        response = connection.send_wait(["sub_reload"])
        if response.get("error") != "success":
            raise MpvError(f"mpv failed to reload the subtitle: {response.get('error')}")
