"""Actions that run on top of a scan: rename, time, alass, mpv and download."""

from .alass import AlassCommand
from .download import Downloader
from .mpv import MpvCommand
from .rename import RenameCommand
from .retime import TimeCommand

__all__ = [
    "AlassCommand",
    "Downloader",
    "MpvCommand",
    "RenameCommand",
    "TimeCommand",
]
