"""Interactive review of scan results before any file is modified.

Matches are printed with the area and the matched number highlighted. The user can
accept, decline, or type a new subtitle/video area regex, in which case the scan is
run again with it and the new result is reviewed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.text import Text

from .config import MatchFilesConfig
from .errors import SubBatchError
from .models import MatchInfo, Span

LOGGER = logging.getLogger(__name__)

AREA_STYLE = "bold black on grey70"
NUMBER_STYLE = "bold black on yellow"
ARROW = " -> "


class MatchAnswer(str, Enum):
    YES = "yes"
    NO = "no"
    EDIT_SUB_REGEX = "edit-sub"
    EDIT_VIDEO_REGEX = "edit-video"


def highlight_name(name: str, match_span: Optional[Span], area_span: Optional[Span], *, color: bool) -> Text:
    text = Text(name)
    if not color:
        return text
    if area_span is not None:
        text.stylize(AREA_STYLE, *area_span)
    if match_span is not None:
        text.stylize(NUMBER_STYLE, *match_span)
    return text


def render_match(match: MatchInfo, *, color: bool = True) -> Text:
    line = highlight_name(match.sub_name, match.sub_match_span, match.sub_area_span, color=color)
    line.append(ARROW)
    line.append_text(highlight_name(match.video_name, match.video_match_span, match.video_area_span, color=color))
    return line


def parse_answer(raw: str) -> MatchAnswer:
    """Empty input or ``y`` accepts, ``s``/``v`` edit a regex, anything else declines."""
    answer = raw.strip().lower()
    if not answer or answer.startswith("y"):
        return MatchAnswer.YES
    if answer.startswith("s"):
        return MatchAnswer.EDIT_SUB_REGEX
    if answer.startswith("v"):
        return MatchAnswer.EDIT_VIDEO_REGEX
    return MatchAnswer.NO


def _describe_regex(pattern: Optional[re.Pattern[str]]) -> str:
    return pattern.pattern if pattern is not None else "None"


def ask_match_is_ok(
    matches: Sequence[MatchInfo],
    sub_area: Optional[re.Pattern[str]],
    video_area: Optional[re.Pattern[str]],
    console: Console,
    *,
    color: bool = True,
) -> MatchAnswer:
    for match in matches:
        console.print(render_match(match, color=color), soft_wrap=True)

    console.print(
        f"\n[s = edit subtitle regex (current: {_describe_regex(sub_area)}), "
        f"v = edit video regex (current: {_describe_regex(video_area)})]",
        markup=False,
        highlight=False,
    )
    try:
        raw = console.input("Ok? (Y/n): ")
    except EOFError:
        return MatchAnswer.NO
    return parse_answer(raw)


def ask_regex(prompt: str, console: Console) -> Optional[re.Pattern[str]]:
    """Read a regex until it compiles. Empty input (or end of input) cancels."""
    while True:
        try:
            raw = console.input(prompt)
        except EOFError:
            return None
        if not raw:
            return None
        try:
            return re.compile(raw)
        except re.error as exc:
            LOGGER.debug("Rejected regex %r: %s", raw, exc)
            prompt = "invalid regex, try again: "


def review_matches(
    matches: list[MatchInfo],
    match_conf: MatchFilesConfig,
    console: Console,
    rescan: Callable[[MatchFilesConfig], list[MatchInfo]],
    *,
    color: bool = True,
) -> Optional[list[MatchInfo]]:
    """Show ``matches`` until the user accepts or declines.

    Returns:
        The accepted matches (possibly from a re-scan with an edited regex), or
        None when the user declined or cancelled.
    """
    current, conf = matches, match_conf
    while True:
        answer = ask_match_is_ok(current, conf.sub_area, conf.video_area, console, color=color)
        if answer is MatchAnswer.YES:
            return current
        if answer is MatchAnswer.NO:
            return None

        editing_sub = answer is MatchAnswer.EDIT_SUB_REGEX
        prompt = "enter new subtitle area regex: " if editing_sub else "enter new video area regex: "
        while True:
            pattern = ask_regex(prompt, console)
            if pattern is None:
                return None
            candidate = conf.with_sub_area(pattern) if editing_sub else conf.with_video_area(pattern)
            try:
                rescanned = rescan(candidate)
            except SubBatchError as exc:
                console.print(f"error: {exc}", markup=False, highlight=False)
                continue
            current, conf = rescanned, candidate
            break
