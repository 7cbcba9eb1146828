from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

Span = Tuple[int, int]


class AreaScan(str, Enum):
    """Which digit run of an area is used: the first (normal) or the last (reverse)."""

    NORMAL = "normal"
    REVERSE = "reverse"


class SecondaryExtensionPolicy(str, Enum):
    """Whether the token before the extension (``en`` in ``show.en.srt``) is folded in."""

    ALWAYS = "always"
    NEVER = "never"
    MAYBE = "maybe"


class MatchKind(str, Enum):
    IDENTICAL = "identical"
    NUMBER = "number"


@dataclass(frozen=True, slots=True)
class FileRecord:
    path: Path
    name: str
    stem: str
    extension: Optional[str]
    area: str
    area_start: int = 0
    area_range: Optional[Span] = None
    extension_start: Optional[int] = None

    def area_offset(self, position: int) -> int:
        """Translate an index into ``area`` to an index into ``name``."""
        return self.area_start + position


def _split_parts(name: str, span: Optional[Span]) -> tuple[str, str, str]:
    if span is None:
        return name, "", ""
    start, end = span
    return name[:start], name[start:end], name[end:]


@dataclass(frozen=True, slots=True)
class MatchInfo:
    """One subtitle paired with one companion file.

    Spans are half-open ``(start, end)`` offsets into ``sub_name`` and
    ``video_name``. Identical matches carry no number spans.
    """

    kind: MatchKind
    sub_path: Path
    sub_name: str
    sub_stem: str
    sub_extension: Optional[str]
    video_path: Path
    video_name: str
    video_stem: str
    video_extension: Optional[str]
    number: Optional[str] = None
    sub_match_span: Optional[Span] = None
    video_match_span: Optional[Span] = None
    sub_area_span: Optional[Span] = None
    video_area_span: Optional[Span] = None

    @property
    def is_identical(self) -> bool:
        return self.kind is MatchKind.IDENTICAL

    def sub_match_parts(self) -> tuple[str, str, str]:
        return _split_parts(self.sub_name, self.sub_match_span)

    def video_match_parts(self) -> tuple[str, str, str]:
        return _split_parts(self.video_name, self.video_match_span)
