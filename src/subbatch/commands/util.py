from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Optional

from ..config import GlobalConfig
from ..errors import NoMatchesError, UnsupportedFormatError
from ..extensions import has_extension_in
from ..file_discovery import display_name
from ..models import MatchInfo


def validate_sub_extensions(paths: Iterable[Path], allowed: tuple[str, ...]) -> None:
    unsupported = [display_name(path) for path in paths if not has_extension_in(display_name(path), allowed)]
    if unsupported:
        raise UnsupportedFormatError(
            f"command supports only the following subtitle formats: {', '.join(allowed)} "
            f"(unsupported: {', '.join(unsupported)})"
        )


def validate_sub_and_file_matches(
    global_conf: GlobalConfig,
    matches: Sequence[MatchInfo],
    allowed: Optional[tuple[str, ...]] = None,
) -> None:
    if not matches:
        raise NoMatchesError(f"found no video/subtitle file pairs in {global_conf.path}")
    if allowed is not None:
        validate_sub_extensions((match.sub_path for match in matches), allowed)


def validate_sub_matches(
    global_conf: GlobalConfig,
    paths: Sequence[Path],
    allowed: Optional[tuple[str, ...]] = None,
) -> None:
    if not paths:
        raise NoMatchesError(f"found no subtitle files in {global_conf.path}")
    if allowed is not None:
        validate_sub_extensions(paths, allowed)
