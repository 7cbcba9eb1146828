from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass
class CommandHelp:
    """
    Structured help content for a CLI command.

    Provides examples, environment variable documentation, and helpful tips
    for use with the RichHelpFormatter.
    """

    examples: List[Tuple[str, str]] = field(default_factory=list)
    """List of (description, command) tuples showing usage examples."""

    env_vars: List[Tuple[str, str]] = field(default_factory=list)
    """List of (variable_name, description) tuples documenting environment variables."""

    tips: List[str] = field(default_factory=list)
    """List of helpful tips and best practices."""


_SHARED_ENV_VARS = [
    ("SUB_BATCH_CONFIG", "Path to the YAML config file (default: ~/.config/sub-batch/config.yaml)"),
    ("NO_COLOR", "Disable colored output when set to any value"),
    ("SUB_BATCH_NO_COLOR", "Disable (true) or force (false) colored output"),
    ("SUB_BATCH_NO_CONFIRM", "Skip the confirmation prompt when true"),
]

ROOT_COMMAND_HELP = CommandHelp(
    examples=[
        ("Rename every subtitle in the current directory after its video", "sub-batch rename"),
        ("Work on another directory without asking for confirmation", "sub-batch -p ~/anime/show -y rename"),
        ("Shift all subtitles 1.5 seconds later", "sub-batch time 1500"),
    ],
    env_vars=_SHARED_ENV_VARS,
    tips=[
        "Subtitles are paired with videos by the first number in their names",
        "Use --subarea/--videoarea to restrict where that number is looked for",
    ],
)

RENAME_COMMAND_HELP = CommandHelp(
    examples=[
        ("Rename subtitles after their videos", "sub-batch rename"),
        ("Only look for the episode number after 'E'", "sub-batch rename --subarea 'E[0-9]+' --videoarea 'E[0-9]+'"),
        ("Match on the last number of each name", "sub-batch rename --reverse"),
        ("Rename and shift the subtitles 200ms earlier", "sub-batch rename --time -200"),
    ],
    env_vars=_SHARED_ENV_VARS,
    tips=[
        "Subtitles already named after their video are left alone",
        "Existing files are never overwritten; conflicting renames are skipped",
        "At the prompt, press 's' or 'v' to try a different area regex",
    ],
)

TIME_COMMAND_HELP = CommandHelp(
    examples=[
        ("Delay every subtitle by 1 second", "sub-batch time 1000"),
        ("Show subtitles 250ms earlier", "sub-batch time -250"),
        ("Shift only the English subtitles of a latin-1 encoded set", "sub-batch --filter-sub 'en' time 500 --encoding latin-1"),
    ],
    env_vars=_SHARED_ENV_VARS,
    tips=["Supported formats: srt, ass, ssa, sub (MicroDVD, uses --fps) and vtt"],
)

ALASS_COMMAND_HELP = CommandHelp(
    examples=[
        ("Align every subtitle to its video", "sub-batch alass"),
        ("Pass options through to alass", "sub-batch alass '--split-penalty 10'"),
        ("Pass a single dash option through to alass", "sub-batch alass -- -g"),
        ("Run one alignment at a time", "sub-batch alass --no-parallel"),
    ],
    env_vars=_SHARED_ENV_VARS,
    tips=[
        "Requires `alass-cli` or `alass` on PATH",
        "Subtitles are overwritten with the aligned version",
    ],
)

MPV_COMMAND_HELP = CommandHelp(
    examples=[("Fine-tune the timing of the first subtitle while watching", "sub-batch mpv")],
    env_vars=_SHARED_ENV_VARS,
    tips=[
        "Requires `mpv` on PATH and UNIX domain socket support",
        "Type 1-3 to shift earlier, 4-6 to shift later and q to quit, each followed by Enter",
        "Apply the total shift to the other files with `sub-batch time`",
    ],
)

DOWNLOAD_COMMAND_HELP = CommandHelp(
    examples=[
        (
            "Download every subtitle of a kitsunekko directory into the current directory",
            "sub-batch download 'https://kitsunekko.net/dirlist.php?dir=subtitles%2Fjapanese%2FShow%2F'",
        ),
    ],
    tips=["Files that already exist in the target directory are overwritten"],
)

COMMAND_HELP: Dict[str, CommandHelp] = {
    "sub-batch": ROOT_COMMAND_HELP,
    "rename": RENAME_COMMAND_HELP,
    "time": TIME_COMMAND_HELP,
    "alass": ALASS_COMMAND_HELP,
    "mpv": MPV_COMMAND_HELP,
    "download": DOWNLOAD_COMMAND_HELP,
}


def get_command_help(command: str) -> CommandHelp:
    """Raises KeyError for unknown command names."""
    return COMMAND_HELP[command]
