"""File-name extension handling.

Subtitle files are recognised by their primary (last) extension. Names may carry a
secondary extension such as the language tag in ``show.en.srt``; whether that token
belongs to the extension or to the stem is decided by a
:class:`~subbatch.models.SecondaryExtensionPolicy`.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import SecondaryExtensionPolicy

DIGITS_PATTERN = re.compile(r"[0-9]+")

SUBTITLE_EXTENSIONS = frozenset(
    {
        "cdg", "idx", "srt", "sub", "utf", "ass", "ssa", "aqt", "jss", "psb", "rt", "sami",
        "smi", "smil", "stl", "usf", "dks", "pjs", "mpl2", "mks", "vtt", "tt", "ttml", "dfxp",
        "scc", "itt", "sbv", "aaf", "mcc", "mxf", "asc", "cap", "onl", "cin", "ult", "scr",
        "sst", "nav", "son",
    }
)  # fmt: skip

# Formats pysubs2 can load and save again.
RETIMABLE_EXTENSIONS = ("srt", "ass", "ssa", "sub", "vtt")

# Formats alass reads through its own subtitle parser.
ALASS_EXTENSIONS = ("ssa", "ass", "sub", "srt", "idx")

MAX_SECONDARY_EXTENSION_LENGTH = 3


def _split_once(name: str) -> Optional[tuple[str, str]]:
    stem, dot, extension = name.rpartition(".")
    if not dot or not stem:
        # no dot at all, or only a leading one (".hidden")
        return None
    return stem, extension


def primary_extension(name: str) -> Optional[str]:
    parts = _split_once(name)
    return parts[1] if parts else None


def split_extension(
    name: str,
    policy: SecondaryExtensionPolicy = SecondaryExtensionPolicy.MAYBE,
) -> Optional[tuple[str, str]]:
    """Split a file name into ``(stem, extension)``.

    Returns None when the name has no extension. With two or more dot-segments the
    second-to-last one is folded into the extension according to ``policy``:

    - ALWAYS: ``show.en.srt`` -> ``("show", "en.srt")``
    - NEVER: ``show.en.srt`` -> ``("show.en", "srt")``
    - MAYBE: fold only when the secondary token has no digit and at most three
      characters, so ``show.02.srt`` -> ``("show.02", "srt")``
    """
    first = _split_once(name)
    if first is None:
        return None
    stem, extension = first
    if policy is SecondaryExtensionPolicy.NEVER:
        return stem, extension

    second = _split_once(stem)
    if second is None:
        return stem, extension
    inner_stem, secondary = second

    if policy is SecondaryExtensionPolicy.MAYBE and (
        DIGITS_PATTERN.search(secondary) or len(secondary) > MAX_SECONDARY_EXTENSION_LENGTH
    ):
        return stem, extension
    return inner_stem, f"{secondary}.{extension}"


def is_subtitle_name(name: str) -> bool:
    extension = primary_extension(name)
    return extension is not None and extension.lower() in SUBTITLE_EXTENSIONS


def has_extension_in(name: str, allowed: tuple[str, ...]) -> bool:
    extension = primary_extension(name)
    return extension is not None and extension.lower() in allowed
