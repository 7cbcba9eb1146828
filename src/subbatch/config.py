from __future__ import annotations

import codecs
import dataclasses
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .models import AreaScan, SecondaryExtensionPolicy
from .scanner import ScanOptions
from .utils import env_bool, load_yaml_file

CONFIG_ENV_VAR = "SUB_BATCH_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/sub-batch/config.yaml")


@dataclass
class TimeSettings:
    encoding: str = "utf-8"
    fps: float = 25.0


@dataclass
class AlassSettings:
    flags: list[str] = field(default_factory=list)
    parallel: bool = True
    max_workers: int = 4


@dataclass
class DownloadSettings:
    timeout: float = 30.0
    max_workers: int = 8


@dataclass
class Settings:
    confirm: bool = True
    color: bool = True
    secondary_extension: SecondaryExtensionPolicy = SecondaryExtensionPolicy.MAYBE
    time: TimeSettings = field(default_factory=TimeSettings)
    alass: AlassSettings = field(default_factory=AlassSettings)
    download: DownloadSettings = field(default_factory=DownloadSettings)


@dataclass
class AppConfig:
    settings: Settings = field(default_factory=Settings)
    source: Optional[Path] = None


# Per-invocation configuration, assembled from AppConfig and command-line flags.


@dataclass(frozen=True)
class GlobalConfig:
    path: Path = Path(".")
    confirm: bool = True
    color: bool = True
    sub_filter: Optional[re.Pattern[str]] = None
    video_filter: Optional[re.Pattern[str]] = None


@dataclass(frozen=True)
class MatchFilesConfig:
    sub_area: Optional[re.Pattern[str]] = None
    video_area: Optional[re.Pattern[str]] = None
    sub_area_scan: AreaScan = AreaScan.NORMAL
    video_area_scan: AreaScan = AreaScan.NORMAL
    secondary_extension_policy: SecondaryExtensionPolicy = SecondaryExtensionPolicy.MAYBE

    def with_sub_area(self, pattern: re.Pattern[str]) -> MatchFilesConfig:
        return dataclasses.replace(self, sub_area=pattern)

    def with_video_area(self, pattern: re.Pattern[str]) -> MatchFilesConfig:
        return dataclasses.replace(self, video_area=pattern)


@dataclass(frozen=True)
class TimeConfig:
    timing: int
    encoding: str = "utf-8"
    fps: float = 25.0


@dataclass(frozen=True)
class RenameConfig:
    match: MatchFilesConfig = field(default_factory=MatchFilesConfig)
    timing: Optional[TimeConfig] = None


@dataclass(frozen=True)
class AlassConfig:
    match: MatchFilesConfig = field(default_factory=MatchFilesConfig)
    flags: tuple[str, ...] = ()
    parallel: bool = True
    max_workers: int = 4


@dataclass(frozen=True)
class DownloadConfig:
    url: str
    timeout: float = 30.0
    max_workers: int = 8


def build_scan_options(global_conf: GlobalConfig, match_conf: Optional[MatchFilesConfig] = None) -> ScanOptions:
    match_conf = match_conf or MatchFilesConfig()
    return ScanOptions(
        path=global_conf.path,
        sub_area=match_conf.sub_area,
        sub_area_scan=match_conf.sub_area_scan,
        video_area=match_conf.video_area,
        video_area_scan=match_conf.video_area_scan,
        sub_filter=global_conf.sub_filter,
        video_filter=global_conf.video_filter,
        secondary_extension_policy=match_conf.secondary_extension_policy,
    )


def parse_secondary_extension_policy(value: Any, *, field_name: str = "secondary_extension") -> SecondaryExtensionPolicy:
    try:
        return SecondaryExtensionPolicy(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in SecondaryExtensionPolicy)
        raise ValueError(f"'{field_name}' must be one of: {choices}") from exc


def validate_encoding(value: Any, *, field_name: str = "encoding") -> str:
    name = str(value).strip()
    try:
        codecs.lookup(name)
    except LookupError as exc:
        raise ValueError(f"'{field_name}' is not a known encoding: {name}") from exc
    return name


def _ensure_mapping(data: Any, *, field_name: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{field_name}' must be provided as a mapping when specified")
    return data


def _positive_number(value: Any, *, field_name: str, kind: type = float) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        noun = "an integer" if kind is int else "a number"
        raise ValueError(f"'{field_name}' must be {noun}") from exc
    if number <= 0:
        raise ValueError(f"'{field_name}' must be greater than 0")
    return number


def _build_time_settings(data: Any) -> TimeSettings:
    data = _ensure_mapping(data, field_name="settings.time")
    defaults = TimeSettings()
    return TimeSettings(
        encoding=validate_encoding(data.get("encoding", defaults.encoding), field_name="settings.time.encoding"),
        fps=_positive_number(data.get("fps", defaults.fps), field_name="settings.time.fps"),
    )


def _build_alass_settings(data: Any) -> AlassSettings:
    data = _ensure_mapping(data, field_name="settings.alass")
    flags_raw = data.get("flags", []) or []
    if isinstance(flags_raw, str):
        flags = shlex.split(flags_raw)
    elif isinstance(flags_raw, list):
        flags = [str(flag) for flag in flags_raw]
    else:
        raise ValueError("'settings.alass.flags' must be provided as a list or a string")
    return AlassSettings(
        flags=flags,
        parallel=bool(data.get("parallel", True)),
        max_workers=_positive_number(data.get("max_workers", 4), field_name="settings.alass.max_workers", kind=int),
    )


def _build_download_settings(data: Any) -> DownloadSettings:
    data = _ensure_mapping(data, field_name="settings.download")
    return DownloadSettings(
        timeout=_positive_number(data.get("timeout", 30.0), field_name="settings.download.timeout"),
        max_workers=_positive_number(
            data.get("max_workers", 8), field_name="settings.download.max_workers", kind=int
        ),
    )


def _build_settings(data: Any) -> Settings:
    data = _ensure_mapping(data, field_name="settings")
    return Settings(
        confirm=bool(data.get("confirm", True)),
        color=bool(data.get("color", True)),
        secondary_extension=parse_secondary_extension_policy(
            data.get("secondary_extension", SecondaryExtensionPolicy.MAYBE.value),
            field_name="settings.secondary_extension",
        ),
        time=_build_time_settings(data.get("time")),
        alass=_build_alass_settings(data.get("alass")),
        download=_build_download_settings(data.get("download")),
    )


def apply_env_overrides(settings: Settings) -> Settings:
    """Let NO_COLOR, SUB_BATCH_NO_COLOR and SUB_BATCH_NO_CONFIRM override the file."""
    if os.getenv("NO_COLOR"):
        settings.color = False
    no_color = env_bool("SUB_BATCH_NO_COLOR")
    if no_color is not None:
        settings.color = not no_color
    no_confirm = env_bool("SUB_BATCH_NO_CONFIRM")
    if no_confirm is not None:
        settings.confirm = not no_confirm
    return settings


def load_config(path: Path) -> AppConfig:
    data = load_yaml_file(path)
    return AppConfig(settings=_build_settings(data.get("settings")), source=path)


def find_config_path(explicit: Optional[Path] = None) -> Optional[Path]:
    """Return the config file to read, or None when only defaults apply.

    An explicit path (flag or environment variable) must exist; the per-user default
    location is only used when present.
    """
    if explicit is not None:
        return explicit
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.is_file() else None


def resolve_config(explicit: Optional[Path] = None) -> AppConfig:
    path = find_config_path(explicit)
    if path is None:
        config = AppConfig()
    else:
        if not path.is_file():
            raise ValueError(f"config file not found: {path}")
        config = load_config(path)
    apply_env_overrides(config.settings)
    return config
