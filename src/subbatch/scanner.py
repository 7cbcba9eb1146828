"""Subtitle to companion file matching.

A scan runs in a fixed sequence of pure steps over one directory listing:

1. list the files whose name contains a digit and classify them
   (:mod:`subbatch.file_discovery`)
2. pair subtitles whose stem already equals a companion's stem (identical matches)
3. cut the configured *area* out of every remaining file name
4. group the remaining subtitles by stem and, group by group in stem order, look for
   the first unconsumed companion whose area contains the group's number

Numbers are compared in canonical form (leading zeros stripped), so ``01`` matches
``1``. Companion occurrences that lie inside the file extension are ignored. Every
companion is used at most once; several subtitles sharing a stem (``ep1.en.srt``,
``ep1.jp.srt``) are paired with the same companion.

Nothing here touches the file system besides the directory listing, so the result
can be shown to the user before any action modifies files.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import AreaMismatchError
from .extensions import DIGITS_PATTERN, split_extension
from .file_discovery import classify_files, display_name, list_number_files, list_subtitle_files
from .logging_utils import render_fields_block, render_section_block
from .models import AreaScan, FileRecord, MatchInfo, MatchKind, SecondaryExtensionPolicy, Span

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanOptions:
    path: Path
    sub_area: Optional[re.Pattern[str]] = None
    sub_area_scan: AreaScan = AreaScan.NORMAL
    video_area: Optional[re.Pattern[str]] = None
    video_area_scan: AreaScan = AreaScan.NORMAL
    sub_filter: Optional[re.Pattern[str]] = None
    video_filter: Optional[re.Pattern[str]] = None
    secondary_extension_policy: SecondaryExtensionPolicy = SecondaryExtensionPolicy.MAYBE


def scan(options: ScanOptions) -> list[MatchInfo]:
    """Pair every subtitle of ``options.path`` with a companion file where possible.

    Returns:
        Identical matches followed by number matches. Subtitles without a
        companion are absent; an empty list is a valid result.

    Raises:
        ScanError: if the directory cannot be read.
        AreaMismatchError: if an area regex does not match one of the file names.
    """
    files = list_number_files(options.path)
    candidates = classify_files(files, sub_filter=options.sub_filter, video_filter=options.video_filter)
    if candidates.is_empty():
        LOGGER.debug(render_fields_block("No Candidates", {"Directory": options.path, "Files Listed": len(files)}))
        return []

    subtitles = [describe_file(path, options.secondary_extension_policy) for path in candidates.subtitles]
    companions = [describe_file(path, SecondaryExtensionPolicy.NEVER) for path in candidates.companions]

    identical, subtitles, companions = match_identical(subtitles, companions)

    subtitles = [extract_area(record, options.sub_area) for record in subtitles]
    companions = [extract_area(record, options.video_area) for record in companions]

    numbered = match_numbers(
        subtitles,
        companions,
        sub_scan=options.sub_area_scan,
        video_scan=options.video_area_scan,
    )

    matches = identical + numbered
    LOGGER.debug(
        render_section_block(
            "Scan Complete",
            [("Matches", [f"{match.sub_name} -> {match.video_name}" for match in matches])],
            fields={
                "Directory": options.path,
                "Identical": len(identical),
                "By Number": len(numbered),
                "Unmatched Subtitles": len(subtitles) - len(numbered),
            },
        )
    )
    return matches


def scan_subs_only(options: ScanOptions) -> list[Path]:
    """List the subtitle files of ``options.path`` that pass the subtitle filter."""
    return list_subtitle_files(options.path, options.sub_filter)


def describe_file(path: Path, policy: SecondaryExtensionPolicy) -> FileRecord:
    """Build the record of one file with the whole name as its area.

    ``stem`` and ``extension`` come from the raw OS name so they can be joined back
    into a path; ``name`` and the offsets refer to the printable form of the name.
    """
    name = display_name(path)
    raw_parts = split_extension(path.name, policy)
    shown_parts = split_extension(name, policy)

    if raw_parts is None or shown_parts is None:
        return FileRecord(path=path, name=name, stem=path.name, extension=None, area=name)

    stem, extension = raw_parts
    return FileRecord(
        path=path,
        name=name,
        stem=stem,
        extension=extension,
        area=name,
        extension_start=len(name) - len(shown_parts[1]),
    )


def extract_area(record: FileRecord, pattern: Optional[re.Pattern[str]]) -> FileRecord:
    """Restrict the record's search area to the first match of ``pattern``.

    Raises:
        AreaMismatchError: if ``pattern`` does not match the file name.
    """
    if pattern is None:
        return record
    found = pattern.search(record.name)
    if found is None:
        raise AreaMismatchError(pattern.pattern, record.name)
    return dataclasses.replace(
        record,
        area=found.group(0),
        area_start=found.start(),
        area_range=(found.start(), found.end()),
    )


def group_by_stem(records: Iterable[FileRecord]) -> dict[str, list[FileRecord]]:
    groups: dict[str, list[FileRecord]] = {}
    for record in records:
        groups.setdefault(record.stem, []).append(record)
    return groups


class CompanionPool:
    """Companion records in path order with at-most-once consumption."""

    def __init__(self, records: Sequence[FileRecord]) -> None:
        self._records = list(records)
        self._consumed = [False] * len(self._records)

    def available(self) -> Iterator[tuple[int, FileRecord]]:
        for index, record in enumerate(self._records):
            if not self._consumed[index]:
                yield index, record

    def consume(self, index: int) -> FileRecord:
        if self._consumed[index]:
            raise ValueError(f"companion {self._records[index].path} already consumed")
        self._consumed[index] = True
        return self._records[index]

    def remaining(self) -> list[FileRecord]:
        return [record for _, record in self.available()]


def match_identical(
    subtitles: Sequence[FileRecord],
    companions: Sequence[FileRecord],
) -> tuple[list[MatchInfo], list[FileRecord], list[FileRecord]]:
    """Pair subtitle stems that equal a companion stem exactly.

    Returns:
        The identical matches, the unmatched subtitles and the unused companions.
    """
    pool = CompanionPool(companions)
    matches: list[MatchInfo] = []
    paired: set[Path] = set()

    groups = group_by_stem(subtitles)
    for stem in sorted(groups):
        found = next((index for index, companion in pool.available() if companion.stem == stem), None)
        if found is None:
            continue
        companion = pool.consume(found)
        for subtitle in groups[stem]:
            matches.append(_build_match(MatchKind.IDENTICAL, subtitle, companion))
            paired.add(subtitle.path)

    remaining = [subtitle for subtitle in subtitles if subtitle.path not in paired]
    return matches, remaining, pool.remaining()


def canonical_number(digits: str) -> str:
    """Strip leading zeros; an all-zero run becomes ``"0"``."""
    return digits.lstrip("0") or "0"


def find_number(area: str, direction: AreaScan) -> Optional[re.Match[str]]:
    """Return the first (NORMAL) or last (REVERSE) digit run of ``area``."""
    runs = list(DIGITS_PATTERN.finditer(area))
    if not runs:
        return None
    return runs[0] if direction is AreaScan.NORMAL else runs[-1]


def _occurrences(text: str, needle: str) -> Iterator[int]:
    start = text.find(needle)
    while start != -1:
        yield start
        start = text.find(needle, start + 1)


def locate_number(record: FileRecord, number: str, direction: AreaScan) -> Optional[int]:
    """Find ``number`` in a companion's area, returning its offset in the name.

    Occurrences starting at or after the extension are not identifiers and are
    skipped. NORMAL picks the leftmost remaining occurrence, REVERSE the rightmost.
    """
    positions = [
        record.area_offset(position)
        for position in _occurrences(record.area, number)
        if record.extension_start is None or record.area_offset(position) < record.extension_start
    ]
    if not positions:
        return None
    return positions[0] if direction is AreaScan.NORMAL else positions[-1]


def _member_span(record: FileRecord, number: str, direction: AreaScan) -> Optional[Span]:
    """Span of ``number`` in a group member, or None when the member does not contain it."""
    runs = [run for run in DIGITS_PATTERN.finditer(record.area) if canonical_number(run.group(0)) == number]
    if not runs:
        return None
    run = runs[0] if direction is AreaScan.NORMAL else runs[-1]
    return record.area_offset(run.start()), record.area_offset(run.end())


def match_numbers(
    subtitles: Sequence[FileRecord],
    companions: Sequence[FileRecord],
    *,
    sub_scan: AreaScan = AreaScan.NORMAL,
    video_scan: AreaScan = AreaScan.NORMAL,
) -> list[MatchInfo]:
    """Greedily pair subtitle groups with companions that share their number.

    Groups are visited in stem order and take the first fitting companion in path
    order, so the result only depends on the directory contents.
    """
    pool = CompanionPool(companions)
    matches: list[MatchInfo] = []

    groups = group_by_stem(subtitles)
    for stem in sorted(groups):
        members = groups[stem]
        representative = members[0]

        run = find_number(representative.area, sub_scan)
        if run is None:
            LOGGER.debug(render_fields_block("No Number In Area", {"Subtitle": representative.name}))
            continue
        number = canonical_number(run.group(0))

        found: Optional[tuple[int, int]] = None
        for index, companion in pool.available():
            position = locate_number(companion, number, video_scan)
            if position is not None:
                found = index, position
                break

        if found is None:
            LOGGER.debug(
                render_fields_block(
                    "No Companion Found",
                    {"Subtitle": representative.name, "Number": number},
                )
            )
            continue

        index, position = found
        companion = pool.consume(index)
        video_span = (position, position + len(number))
        for member in members:
            matches.append(
                _build_match(
                    MatchKind.NUMBER,
                    member,
                    companion,
                    number=number,
                    sub_match_span=_member_span(member, number, sub_scan),
                    video_match_span=video_span,
                )
            )

    return matches


def _build_match(
    kind: MatchKind,
    subtitle: FileRecord,
    companion: FileRecord,
    *,
    number: Optional[str] = None,
    sub_match_span: Optional[Span] = None,
    video_match_span: Optional[Span] = None,
) -> MatchInfo:
    return MatchInfo(
        kind=kind,
        sub_path=subtitle.path,
        sub_name=subtitle.name,
        sub_stem=subtitle.stem,
        sub_extension=subtitle.extension,
        video_path=companion.path,
        video_name=companion.name,
        video_stem=companion.stem,
        video_extension=companion.extension,
        number=number,
        sub_match_span=sub_match_span,
        video_match_span=video_match_span,
        sub_area_span=subtitle.area_range,
        video_area_span=companion.area_range,
    )
