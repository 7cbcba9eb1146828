from __future__ import annotations

import pytest

from subbatch.utils import (
    env_bool,
    expand_env,
    load_yaml_file,
    move_file,
    parse_env_bool,
    validate_url,
)


def test_move_file_renames_and_detects_existing(tmp_path) -> None:
    source = tmp_path / "ep01.srt"
    source.write_text("subs", encoding="utf-8")
    destination = tmp_path / "Show 01.srt"

    result = move_file(source, destination)
    assert result.moved is True
    assert destination.read_text(encoding="utf-8") == "subs"
    assert not source.exists()

    other = tmp_path / "ep02.srt"
    other.write_text("other", encoding="utf-8")
    blocked = move_file(other, destination)
    assert blocked.moved is False
    assert blocked.reason == "destination-exists"
    assert destination.read_text(encoding="utf-8") == "subs"
    assert other.exists()


def test_move_file_same_path(tmp_path) -> None:
    source = tmp_path / "ep01.srt"
    source.write_text("", encoding="utf-8")

    result = move_file(source, source)

    assert result.moved is False
    assert result.reason == "same-path"


def test_move_file_reports_os_errors(tmp_path) -> None:
    result = move_file(tmp_path / "missing.srt", tmp_path / "target.srt")

    assert result.moved is False
    assert result.reason


def test_expand_env_recurses_into_containers(monkeypatch) -> None:
    monkeypatch.setenv("SUB_DIR", "/media/subs")

    assert expand_env({"a": ["$SUB_DIR/x", 3], "b": "${SUB_DIR}"}) == {"a": ["/media/subs/x", 3], "b": "/media/subs"}


def test_load_yaml_file_rejects_non_mapping(tmp_path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_yaml_file(path)


def test_load_yaml_file_empty_is_empty_mapping(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_yaml_file(path) == {}


class TestParseEnvBool:
    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_parses_truthy_values(self, value: str) -> None:
        assert parse_env_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "No", "off"])
    def test_parses_falsy_values(self, value: str) -> None:
        assert parse_env_bool(value) is False

    def test_returns_none_for_none(self) -> None:
        assert parse_env_bool(None) is None

    def test_returns_none_for_unrecognized(self) -> None:
        assert parse_env_bool("sometimes") is None

    def test_strips_whitespace(self) -> None:
        assert parse_env_bool("  true ") is True


class TestEnvBool:
    def test_reads_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("SUB_BATCH_TEST_FLAG", "on")
        assert env_bool("SUB_BATCH_TEST_FLAG") is True

    def test_returns_none_when_not_set(self, monkeypatch) -> None:
        monkeypatch.delenv("SUB_BATCH_TEST_FLAG", raising=False)
        assert env_bool("SUB_BATCH_TEST_FLAG") is None


class TestValidateUrl:
    def test_accepts_https(self) -> None:
        assert validate_url("https://kitsunekko.net/dirlist.php?dir=subtitles") is True

    def test_rejects_missing_scheme(self) -> None:
        assert validate_url("kitsunekko.net/dirlist.php") is False

    def test_rejects_file_scheme(self) -> None:
        assert validate_url("file:///etc/passwd") is False

    def test_rejects_empty(self) -> None:
        assert validate_url("") is False
        assert validate_url(None) is False
