"""Rename subtitles after the companion file they were matched with.

Renaming can be combined with a retime. Actions always run in a fixed order (retime
first) because renaming changes the paths the retime step reads from.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from ..config import GlobalConfig, MatchFilesConfig, RenameConfig, TimeConfig, build_scan_options
from ..extensions import RETIMABLE_EXTENSIONS
from ..logging_utils import render_fields_block
from ..models import MatchInfo
from ..prompt import review_matches
from ..scanner import scan
from ..utils import move_file
from .retime import shift_subtitles
from .util import validate_sub_and_file_matches, validate_sub_extensions

LOGGER = logging.getLogger(__name__)


class ActionKind(IntEnum):
    RETIME = 1
    RENAME = 2


@dataclass(frozen=True)
class RetimeAction:
    config: TimeConfig
    kind: ActionKind = ActionKind.RETIME


@dataclass(frozen=True)
class RenameAction:
    kind: ActionKind = ActionKind.RENAME


Action = Union[RetimeAction, RenameAction]


@dataclass
class ActionReport:
    retimed: list[Path] = field(default_factory=list)
    renamed: list[tuple[Path, Path]] = field(default_factory=list)
    skipped: list[tuple[Path, str]] = field(default_factory=list)


def rename_target(match: MatchInfo) -> Path:
    """Return the companion's stem joined with the subtitle's extension."""
    if match.sub_extension is None:
        return match.video_path.with_name(match.video_stem)
    return match.video_path.with_name(f"{match.video_stem}.{match.sub_extension}")


def rename_subtitles(matches: Sequence[MatchInfo], report: ActionReport) -> None:
    for match in matches:
        destination = rename_target(match)
        result = move_file(match.sub_path, destination)
        if result.moved:
            report.renamed.append((match.sub_path, destination))
            LOGGER.info(render_fields_block("Renamed Subtitle", {"From": match.sub_name, "To": destination.name}))
            continue
        report.skipped.append((match.sub_path, result.reason or "unknown"))
        LOGGER.warning(
            render_fields_block(
                "Rename Skipped",
                {"Subtitle": match.sub_name, "Destination": destination, "Reason": result.reason},
            )
        )


def apply_actions(matches: Sequence[MatchInfo], actions: Sequence[Action]) -> ActionReport:
    report = ActionReport()
    for action in sorted(actions, key=lambda item: item.kind):
        if isinstance(action, RetimeAction):
            report.retimed = shift_subtitles([match.sub_path for match in matches], action.config)
        else:
            rename_subtitles(matches, report)
    return report


class RenameCommand:
    def __init__(self, global_conf: GlobalConfig, conf: RenameConfig, console: Console) -> None:
        self.global_conf = global_conf
        self.conf = conf
        self.console = console

    def find_renames(self, match_conf: MatchFilesConfig) -> list[MatchInfo]:
        """Scan and keep only the matches whose subtitle is not named after its companion yet."""
        matches = scan(build_scan_options(self.global_conf, match_conf))
        validate_sub_and_file_matches(self.global_conf, matches)
        return [match for match in matches if not match.is_identical]

    def actions(self) -> list[Action]:
        actions: list[Action] = [RenameAction()]
        if self.conf.timing is not None:
            actions.append(RetimeAction(self.conf.timing))
        return actions

    def run(self) -> Optional[ActionReport]:
        """Returns None when there was nothing to do or the user declined."""
        renames = self.find_renames(self.conf.match)
        if not renames:
            self.console.print("all subtitles are already renamed")
            return None

        if self.global_conf.confirm:
            approved = review_matches(
                renames, self.conf.match, self.console, self.find_renames, color=self.global_conf.color
            )
            if approved is None:
                return None
            renames = approved

        if self.conf.timing is not None:
            validate_sub_extensions((match.sub_path for match in renames), RETIMABLE_EXTENSIONS)

        report = apply_actions(renames, self.actions())
        self.console.print(f"renamed {len(report.renamed)} subtitle file(s)", highlight=False)
        if report.skipped:
            self.console.print(f"skipped {len(report.skipped)} subtitle file(s), see the log", highlight=False)
        return report
