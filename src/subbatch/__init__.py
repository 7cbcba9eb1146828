"""sub-batch core package.

- **scanner**: pairs subtitle files with their companion (video) files
- **file_discovery**: directory listing, subtitle/companion classification and filters
- **extensions**: extension splitting and the subtitle extension allow-list
- **prompt**: interactive review of the pairing before files are touched
- **commands**: rename, retime, alass alignment, mpv live shift and downloads
- **cli**: the ``sub-batch`` command line

The entry point for programmatic use is :func:`scan`.
"""

from .models import MatchInfo
from .scanner import ScanOptions, scan
from .version import __version__

__all__ = [
    "__version__",
    "MatchInfo",
    "ScanOptions",
    "scan",
]
