from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from rich.console import Console

from ..config import AlassConfig, GlobalConfig, MatchFilesConfig, build_scan_options
from ..errors import AlignmentError, ToolNotFoundError
from ..extensions import ALASS_EXTENSIONS
from ..logging_utils import render_fields_block, render_section_block
from ..models import MatchInfo
from ..prompt import review_matches
from ..scanner import scan
from .util import validate_sub_and_file_matches

LOGGER = logging.getLogger(__name__)

ALASS_BINARY_NAMES = ("alass-cli", "alass")


def find_alass_binary() -> str:
    for name in ALASS_BINARY_NAMES:
        path = shutil.which(name)
        if path:
            return path
    raise ToolNotFoundError("could not find `alass-cli` or `alass` in PATH. Is alass installed?")


class AlassCommand:
    """Align each matched subtitle to its video with alass, overwriting the subtitle."""

    def __init__(self, global_conf: GlobalConfig, conf: AlassConfig, console: Console) -> None:
        self.global_conf = global_conf
        self.conf = conf
        self.console = console

    def find_matches(self, match_conf: MatchFilesConfig) -> list[MatchInfo]:
        matches = scan(build_scan_options(self.global_conf, match_conf))
        validate_sub_and_file_matches(self.global_conf, matches, ALASS_EXTENSIONS)
        return matches

    def run(self) -> Optional[list[MatchInfo]]:
        matches = self.find_matches(self.conf.match)
        if self.global_conf.confirm:
            approved = review_matches(
                matches, self.conf.match, self.console, self.find_matches, color=self.global_conf.color
            )
            if approved is None:
                return None
            matches = approved

        self.align_all(matches)
        self.console.print(f"aligned {len(matches)} subtitle file(s)", highlight=False)
        return matches

    def command_for(self, binary: str, match: MatchInfo) -> list[str]:
        # alass reads the video, then the subtitle, then writes to the output path
        return [binary, str(match.video_path), str(match.sub_path), str(match.sub_path), *self.conf.flags]

    def align(self, binary: str, match: MatchInfo) -> None:
        command = self.command_for(binary, match)
        LOGGER.debug(render_fields_block("Running alass", {"Command": " ".join(command)}))
        try:
            completed = subprocess.run(command, cwd=self.global_conf.path, check=False)
        except OSError as exc:
            raise AlignmentError(f"failed to start {binary}: {exc}") from exc
        if completed.returncode != 0:
            raise AlignmentError(f"{binary} exited with status {completed.returncode} for {match.sub_name}")
        LOGGER.info(render_fields_block("Aligned Subtitle", {"Subtitle": match.sub_name, "Video": match.video_name}))

    def align_all(self, matches: Sequence[MatchInfo]) -> None:
        """Run alass for every match; one failed run does not stop the others.

        Raises:
            ToolNotFoundError: if no alass binary is on PATH.
            AlignmentError: after all runs finished, if any of them failed.
        """
        binary = find_alass_binary()
        failures: list[str] = []

        if not self.conf.parallel or len(matches) <= 1:
            for match in matches:
                try:
                    self.align(binary, match)
                except AlignmentError as exc:
                    failures.append(str(exc))
        else:
            max_workers = min(self.conf.max_workers, len(matches))
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                future_map = {executor.submit(self.align, binary, match): match for match in matches}
                for future in as_completed(future_map):
                    try:
                        future.result()
                    except AlignmentError as exc:
                        failures.append(str(exc))

        if failures:
            LOGGER.error(render_section_block("Alignment Failures", [("Failures", failures)]))
            raise AlignmentError(f"alass failed for {len(failures)} of {len(matches)} subtitle(s)", failures)

