from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import pysubs2
from pysubs2.exceptions import Pysubs2Error
from rich.console import Console

from ..config import GlobalConfig, TimeConfig, build_scan_options
from ..errors import UnsupportedFormatError
from ..extensions import RETIMABLE_EXTENSIONS
from ..logging_utils import render_fields_block
from ..scanner import scan_subs_only
from .util import validate_sub_matches

LOGGER = logging.getLogger(__name__)


def load_subtitle(path: Path, conf: TimeConfig) -> pysubs2.SSAFile:
    try:
        return pysubs2.load(str(path), encoding=conf.encoding, fps=conf.fps)
    except (Pysubs2Error, UnicodeDecodeError, ValueError) as exc:
        raise UnsupportedFormatError(f"failed to parse subtitle file {path}: {exc}") from exc


def shift_subtitles(paths: Sequence[Path], conf: TimeConfig) -> list[Path]:
    """Shift every subtitle in ``paths`` by ``conf.timing`` milliseconds in place.

    All files are parsed before the first one is written, so a file that cannot be
    read leaves every other file untouched.
    """
    loaded = [(path, load_subtitle(path, conf)) for path in paths]
    for path, subtitles in loaded:
        subtitles.shift(ms=conf.timing)
        subtitles.save(str(path), encoding=conf.encoding, fps=conf.fps)
        LOGGER.debug(render_fields_block("Retimed Subtitle", {"File": path, "Shift (ms)": conf.timing}))
    return [path for path, _ in loaded]


class TimeCommand:
    """Shift every subtitle file of the directory by a fixed offset."""

    def __init__(self, global_conf: GlobalConfig, conf: TimeConfig, console: Console) -> None:
        self.global_conf = global_conf
        self.conf = conf
        self.console = console

    def run(self) -> list[Path]:
        subtitles = scan_subs_only(build_scan_options(self.global_conf))
        validate_sub_matches(self.global_conf, subtitles, RETIMABLE_EXTENSIONS)
        retimed = shift_subtitles(subtitles, self.conf)
        LOGGER.info(
            render_fields_block(
                "Retime Complete",
                {"Directory": self.global_conf.path, "Files": len(retimed), "Shift (ms)": self.conf.timing},
            )
        )
        self.console.print(f"shifted {len(retimed)} subtitle file(s) by {self.conf.timing}ms", highlight=False)
        return retimed
