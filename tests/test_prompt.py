from __future__ import annotations

import re
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from subbatch.config import MatchFilesConfig
from subbatch.errors import AreaMismatchError
from subbatch.models import MatchInfo, MatchKind
from subbatch.prompt import (
    AREA_STYLE,
    NUMBER_STYLE,
    MatchAnswer,
    ask_match_is_ok,
    ask_regex,
    highlight_name,
    parse_answer,
    render_match,
    review_matches,
)


def _match(sub_name: str = "sub01.srt", video_name: str = "sample-video-01.mp4") -> MatchInfo:
    return MatchInfo(
        kind=MatchKind.NUMBER,
        sub_path=Path(sub_name),
        sub_name=sub_name,
        sub_stem=sub_name.rsplit(".", 1)[0],
        sub_extension="srt",
        video_path=Path(video_name),
        video_name=video_name,
        video_stem=video_name.rsplit(".", 1)[0],
        video_extension="mp4",
        number="1",
        sub_match_span=(3, 5),
        video_match_span=(14, 15),
        sub_area_span=(0, 5),
    )


def _console() -> tuple[Console, StringIO]:
    output = StringIO()
    return Console(file=output, width=120, color_system=None), output


def _answers(monkeypatch, *answers: str) -> list[str]:
    pending = list(answers)

    def fake_input(*_args) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)
    return pending


class TestHighlight:
    """Tests for match rendering."""

    def test_styles_area_and_number(self) -> None:
        text = highlight_name("sub01.srt", (3, 5), (0, 5), color=True)

        styles = {(span.start, span.end, str(span.style)) for span in text.spans}
        assert (0, 5, AREA_STYLE) in styles
        assert (3, 5, NUMBER_STYLE) in styles

    def test_no_color_has_no_styles(self) -> None:
        text = highlight_name("sub01.srt", (3, 5), (0, 5), color=False)

        assert text.spans == []
        assert text.plain == "sub01.srt"

    def test_render_match_joins_both_names(self) -> None:
        assert render_match(_match()).plain == "sub01.srt -> sample-video-01.mp4"


class TestParseAnswer:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("", MatchAnswer.YES),
            ("  ", MatchAnswer.YES),
            ("y", MatchAnswer.YES),
            ("Yes", MatchAnswer.YES),
            ("s", MatchAnswer.EDIT_SUB_REGEX),
            ("v", MatchAnswer.EDIT_VIDEO_REGEX),
            ("n", MatchAnswer.NO),
            ("whatever", MatchAnswer.NO),
        ],
    )
    def test_answers(self, raw: str, expected: MatchAnswer) -> None:
        assert parse_answer(raw) is expected


class TestAskMatchIsOk:
    """Tests for the confirmation question."""

    def test_prints_matches_and_current_regexes(self, monkeypatch) -> None:
        console, output = _console()
        _answers(monkeypatch, "y")

        answer = ask_match_is_ok([_match()], re.compile(r"sub\d+"), None, console, color=False)

        text = output.getvalue()
        assert answer is MatchAnswer.YES
        assert "sub01.srt -> sample-video-01.mp4" in text
        assert r"[s = edit subtitle regex (current: sub\d+), v = edit video regex (current: None)]" in text
        assert "Ok? (Y/n):" in text

    def test_end_of_input_declines(self, monkeypatch) -> None:
        console, _ = _console()
        _answers(monkeypatch)

        assert ask_match_is_ok([_match()], None, None, console) is MatchAnswer.NO


class TestAskRegex:
    """Tests for reading a replacement regex."""

    def test_returns_compiled_pattern(self, monkeypatch) -> None:
        console, _ = _console()
        _answers(monkeypatch, r"E(\d+)")

        assert ask_regex("enter regex: ", console).pattern == r"E(\d+)"

    def test_invalid_regex_prompts_again(self, monkeypatch) -> None:
        console, output = _console()
        _answers(monkeypatch, "(", "ok")

        assert ask_regex("enter regex: ", console).pattern == "ok"
        assert "invalid regex, try again:" in output.getvalue()

    def test_empty_input_cancels(self, monkeypatch) -> None:
        console, _ = _console()
        _answers(monkeypatch, "")

        assert ask_regex("enter regex: ", console) is None


class TestReviewMatches:
    """Tests for the accept / decline / edit loop."""

    def test_accept(self, monkeypatch) -> None:
        console, _ = _console()
        matches = [_match()]
        _answers(monkeypatch, "")

        assert review_matches(matches, MatchFilesConfig(), console, rescan=lambda conf: []) is matches

    def test_decline(self, monkeypatch) -> None:
        console, _ = _console()
        _answers(monkeypatch, "n")

        assert review_matches([_match()], MatchFilesConfig(), console, rescan=lambda conf: []) is None

    def test_edit_subtitle_regex_rescans(self, monkeypatch) -> None:
        console, _ = _console()
        rescanned = [_match("ep01.srt")]
        seen: list[MatchFilesConfig] = []

        def rescan(conf: MatchFilesConfig) -> list[MatchInfo]:
            seen.append(conf)
            return rescanned

        _answers(monkeypatch, "s", r"ep\d+", "y")

        result = review_matches([_match()], MatchFilesConfig(), console, rescan)

        assert result is rescanned
        assert len(seen) == 1
        assert seen[0].sub_area.pattern == r"ep\d+"
        assert seen[0].video_area is None

    def test_edit_video_regex_then_decline(self, monkeypatch) -> None:
        console, _ = _console()
        seen: list[MatchFilesConfig] = []

        def rescan(conf: MatchFilesConfig) -> list[MatchInfo]:
            seen.append(conf)
            return [_match()]

        _answers(monkeypatch, "v", "(", r"- \d+", "n")

        assert review_matches([_match()], MatchFilesConfig(), console, rescan) is None
        assert [conf.video_area.pattern for conf in seen] == [r"- \d+"]

    def test_scan_error_asks_again(self, monkeypatch) -> None:
        console, output = _console()
        calls: list[str] = []

        def rescan(conf: MatchFilesConfig) -> list[MatchInfo]:
            calls.append(conf.sub_area.pattern)
            if conf.sub_area.pattern == "bad":
                raise AreaMismatchError("bad", "sub01.srt")
            return [_match()]

        _answers(monkeypatch, "s", "bad", "sub", "")

        assert review_matches([_match()], MatchFilesConfig(), console, rescan) is not None
        assert calls == ["bad", "sub"]
        assert "error: failed to match regex bad on text: sub01.srt" in output.getvalue()

    def test_cancelled_regex_declines(self, monkeypatch) -> None:
        console, _ = _console()
        _answers(monkeypatch, "s", "")

        assert review_matches([_match()], MatchFilesConfig(), console, rescan=lambda conf: []) is None
