from __future__ import annotations

import argparse
import logging
import re
import shlex
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console

from .command_help import get_command_help
from .commands import AlassCommand, Downloader, MpvCommand, RenameCommand, TimeCommand
from .config import (
    AlassConfig,
    DownloadConfig,
    GlobalConfig,
    MatchFilesConfig,
    RenameConfig,
    Settings,
    TimeConfig,
    parse_secondary_extension_policy,
    resolve_config,
    validate_encoding,
)
from .errors import AlignmentError, SubBatchError
from .help_formatter import RichArgumentParser
from .logging_utils import configure_logging
from .models import AreaScan, SecondaryExtensionPolicy
from .version import __version__

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()
ERROR_CONSOLE = Console(stderr=True)

Handler = Callable[[argparse.Namespace], int]


def _regex(value: str) -> re.Pattern[str]:
    try:
        return re.compile(value)
    except re.error as exc:
        raise argparse.ArgumentTypeError(f"invalid regex {value!r}: {exc}") from exc


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return number


def _add_match_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("matching")
    group.add_argument("--subarea", type=_regex, help="Only look for the number inside this regex match of subtitle names")
    group.add_argument("--videoarea", type=_regex, help="Only look for the number inside this regex match of video names")
    group.add_argument("--reverse", action="store_true", help="Use the last number of both names instead of the first")
    group.add_argument("--sub-reverse", action="store_true", help="Use the last number of subtitle names")
    group.add_argument("--video-reverse", action="store_true", help="Use the last occurrence in video names")
    group.add_argument(
        "--secondary-ext",
        choices=[policy.value for policy in SecondaryExtensionPolicy],
        help="Whether a token like 'en' in 'show.en.srt' belongs to the extension (default: maybe)",
    )


def build_parser() -> RichArgumentParser:
    parser = RichArgumentParser(
        prog="sub-batch",
        description="Match and rename subtitle files to their videos, and batch retime them.",
        command_help=get_command_help("sub-batch"),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-p", "--path", type=Path, default=Path("."), help="Directory to work in (default: .)")
    parser.add_argument("-y", "--no-confirm", action="store_true", help="Do not ask before modifying files")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--filter-sub", type=_regex, help="Only consider subtitle files matching this regex")
    parser.add_argument("--filter-video", type=_regex, help="Only consider video files matching this regex")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging on stderr")
    parser.add_argument("--log-file", type=Path, help="Also write debug logging to this file")
    parser.add_argument("--config", type=Path, help="Path to the YAML config file")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    rename_parser = subparsers.add_parser(
        "rename",
        help="Rename subtitles after their matching video",
        description="Rename subtitles after their matching video.",
        command_help=get_command_help("rename"),
    )
    _add_match_arguments(rename_parser)
    rename_parser.add_argument("--time", type=int, metavar="MS", help="Also shift the renamed subtitles by MS milliseconds")
    rename_parser.set_defaults(handler=run_rename)

    time_parser = subparsers.add_parser(
        "time",
        help="Shift every subtitle in the directory",
        description="Shift every subtitle in the directory by a fixed offset.",
        command_help=get_command_help("time"),
    )
    time_parser.add_argument("timing", type=int, metavar="MS", help="Offset in milliseconds, negative to show earlier")
    time_parser.add_argument("-e", "--encoding", help="Subtitle text encoding (default: utf-8)")
    time_parser.add_argument("--fps", type=float, help="Frame rate for frame-based formats (default: 25)")
    time_parser.set_defaults(handler=run_time)

    alass_parser = subparsers.add_parser(
        "alass",
        help="Align subtitles to their videos with alass",
        description="Align every matched subtitle to its video with alass.",
        command_help=get_command_help("alass"),
    )
    _add_match_arguments(alass_parser)
    alass_parser.add_argument("flags", nargs="?", default="", help="Options passed through to alass")
    alass_parser.add_argument("--no-parallel", action="store_true", help="Run alass for one subtitle at a time")
    alass_parser.add_argument("-j", "--jobs", type=_positive_int, help="Number of parallel alass runs (default: 4)")
    alass_parser.set_defaults(handler=run_alass)

    mpv_parser = subparsers.add_parser(
        "mpv",
        help="Shift a subtitle live while watching in mpv",
        description="Open the first match in mpv and shift its subtitle interactively.",
        command_help=get_command_help("mpv"),
    )
    mpv_parser.set_defaults(handler=run_mpv)

    download_parser = subparsers.add_parser(
        "download",
        help="Download the subtitles listed on a kitsunekko.net page",
        description="Download every subtitle linked from a kitsunekko.net directory page.",
        command_help=get_command_help("download"),
    )
    download_parser.add_argument("url", help="kitsunekko.net directory URL")
    download_parser.set_defaults(handler=run_download)

    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    return resolve_config(getattr(args, "config", None)).settings


def build_global_config(args: argparse.Namespace, settings: Settings) -> GlobalConfig:
    color = settings.color and not getattr(args, "no_color", False)
    if not color:
        CONSOLE.no_color = True
    return GlobalConfig(
        path=getattr(args, "path", None) or Path("."),
        confirm=settings.confirm and not getattr(args, "no_confirm", False),
        color=color,
        sub_filter=getattr(args, "filter_sub", None),
        video_filter=getattr(args, "filter_video", None),
    )


def build_match_config(args: argparse.Namespace, settings: Settings) -> MatchFilesConfig:
    reverse = getattr(args, "reverse", False)
    policy = getattr(args, "secondary_ext", None)
    return MatchFilesConfig(
        sub_area=getattr(args, "subarea", None),
        video_area=getattr(args, "videoarea", None),
        sub_area_scan=AreaScan.REVERSE if reverse or getattr(args, "sub_reverse", False) else AreaScan.NORMAL,
        video_area_scan=AreaScan.REVERSE if reverse or getattr(args, "video_reverse", False) else AreaScan.NORMAL,
        secondary_extension_policy=(
            parse_secondary_extension_policy(policy, field_name="--secondary-ext")
            if policy
            else settings.secondary_extension
        ),
    )


def build_time_config(timing: int, args: argparse.Namespace, settings: Settings) -> TimeConfig:
    encoding = getattr(args, "encoding", None) or settings.time.encoding
    fps = getattr(args, "fps", None) or settings.time.fps
    if fps <= 0:
        raise ValueError("'--fps' must be greater than 0")
    return TimeConfig(timing=timing, encoding=validate_encoding(encoding, field_name="--encoding"), fps=fps)


def run_rename(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    global_conf = build_global_config(args, settings)
    timing = getattr(args, "time", None)
    conf = RenameConfig(
        match=build_match_config(args, settings),
        timing=build_time_config(timing, args, settings) if timing is not None else None,
    )
    RenameCommand(global_conf, conf, CONSOLE).run()
    return 0


def run_time(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    global_conf = build_global_config(args, settings)
    TimeCommand(global_conf, build_time_config(args.timing, args, settings), CONSOLE).run()
    return 0


def run_alass(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    global_conf = build_global_config(args, settings)
    conf = AlassConfig(
        match=build_match_config(args, settings),
        flags=tuple(settings.alass.flags) + tuple(shlex.split(getattr(args, "flags", "") or "")),
        parallel=settings.alass.parallel and not getattr(args, "no_parallel", False),
        max_workers=getattr(args, "jobs", None) or settings.alass.max_workers,
    )
    AlassCommand(global_conf, conf, CONSOLE).run()
    return 0


def run_mpv(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    global_conf = build_global_config(args, settings)
    MpvCommand(global_conf, build_time_config(0, args, settings), CONSOLE).run()
    return 0


def run_download(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    global_conf = build_global_config(args, settings)
    conf = DownloadConfig(
        url=args.url,
        timeout=settings.download.timeout,
        max_workers=settings.download.max_workers,
    )
    Downloader(conf, global_conf.path, CONSOLE).run()
    return 0


def _report_error(exc: BaseException) -> None:
    ERROR_CONSOLE.print(f"error: {exc}", markup=False, highlight=False)
    if isinstance(exc, AlignmentError):
        for failure in exc.failures:
            ERROR_CONSOLE.print(f"  {failure}", markup=False, highlight=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler: Optional[Handler] = getattr(args, "handler", None)
    if handler is None:
        parser.print_usage(sys.stderr)
        return 1

    configure_logging(verbose=args.verbose, log_file=args.log_file)
    try:
        return handler(args)
    except (SubBatchError, ValueError, OSError) as exc:
        LOGGER.debug("Command %s failed", args.command, exc_info=True)
        _report_error(exc)
        return 1
    except KeyboardInterrupt:
        ERROR_CONSOLE.print("interrupted")
        return 130


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
