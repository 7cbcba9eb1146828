"""Candidate file discovery, classification and filtering.

This module lists the files of the scan directory, keeps those whose name carries a
digit (a name without digits can never be paired by number), splits them into
subtitles and companions by extension, and applies the user's include filters.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ScanError
from .extensions import DIGITS_PATTERN, is_subtitle_name
from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)


def display_name(path: Path) -> str:
    """Return the file name of ``path`` as text, replacing undecodable bytes.

    Raises:
        ScanError: if the path has no file name component.
    """
    name = path.name
    if not name:
        raise ScanError(f"file {path} has an invalid file name")
    return os.fsencode(name).decode("utf-8", errors="replace")


def _list_files(directory: Path) -> list[Path]:
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise ScanError(f"cannot read directory {directory}: {exc.strerror or exc}") from exc
    return [entry for entry in entries if entry.is_file()]


def list_number_files(directory: Path) -> list[Path]:
    """List the regular files directly inside ``directory`` whose name has a digit.

    Returns:
        Paths sorted ascending.

    Raises:
        ScanError: if the directory cannot be read.
    """
    files = sorted(path for path in _list_files(directory) if DIGITS_PATTERN.search(display_name(path)))
    LOGGER.debug(
        render_fields_block(
            "Listed Candidate Files",
            {"Directory": directory, "Files": len(files)},
        )
    )
    return files


def list_subtitle_files(directory: Path, sub_filter: Optional[re.Pattern[str]] = None) -> list[Path]:
    """List every subtitle file directly inside ``directory``, digits or not."""
    subtitles = [
        path
        for path in sorted(_list_files(directory))
        if is_subtitle_name(display_name(path)) and matches_filter(sub_filter, path)
    ]
    LOGGER.debug(
        render_fields_block(
            "Listed Subtitle Files",
            {"Directory": directory, "Files": len(subtitles), "Filter": sub_filter.pattern if sub_filter else None},
        )
    )
    return subtitles


def matches_filter(pattern: Optional[re.Pattern[str]], path: Path) -> bool:
    """Check a file name against an optional include filter.

    A missing filter accepts everything; the regex may match anywhere in the name.
    """
    if pattern is None:
        return True
    return pattern.search(display_name(path)) is not None


@dataclass
class Candidates:
    subtitles: list[Path] = field(default_factory=list)
    companions: list[Path] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.subtitles and not self.companions


def classify_files(
    files: Iterable[Path],
    *,
    sub_filter: Optional[re.Pattern[str]] = None,
    video_filter: Optional[re.Pattern[str]] = None,
) -> Candidates:
    """Partition files into subtitles and companions, then apply each side's filter.

    Input order is preserved within each partition. Files rejected by a filter are
    dropped without error.
    """
    candidates = Candidates()
    dropped = 0
    for path in files:
        if is_subtitle_name(display_name(path)):
            if matches_filter(sub_filter, path):
                candidates.subtitles.append(path)
                continue
        elif matches_filter(video_filter, path):
            candidates.companions.append(path)
            continue
        dropped += 1

    LOGGER.debug(
        render_fields_block(
            "Classified Files",
            {
                "Subtitles": len(candidates.subtitles),
                "Companions": len(candidates.companions),
                "Filtered Out": dropped,
            },
        )
    )
    return candidates
