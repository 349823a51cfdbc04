"""Tag Extractor - time-window extraction of tagged samples from data logs.

Reads tag samples from csv, txt and xlsx log files, merges them across
chronologically ordered files, restricts them to a time window and
decimates them to a sampling interval.
"""


def _get_version() -> str:
    """Get version from package metadata or pyproject.toml.

    Tries to read from installed package metadata first (standard way),
    then falls back to reading pyproject.toml directly for development.
    """
    from importlib.metadata import version, PackageNotFoundError
    try:
        return version("tag-extractor")
    except PackageNotFoundError:
        pass

    # Fallback: read from pyproject.toml for development
    from pathlib import Path
    import re

    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        try:
            content = pyproject_path.read_text(encoding="utf-8")
            # Simple regex to extract version (works without TOML parser)
            match = re.search(r'version\s*=\s*"([^"]+)"', content)
            if match:
                return match.group(1)
        except OSError:
            pass

    return "0.0.0"  # Fallback if nothing found


__version__ = _get_version()

from .config import ExtractorConfig, load_config  # noqa: E402
from .engine import (  # noqa: E402
    ExtractionEngine,
    ExtractionRequest,
    ExtractionResult,
    TimeWindow,
)
from .errors import (  # noqa: E402
    DateTimeFormatError,
    ExtractionError,
    ExtractionRangeError,
    ExtractionWarning,
    InvalidFilenameWarning,
    MalformedRowError,
    MissingTagWarning,
    OutOfOrderRowsWarning,
    RenamedTagWarning,
    UnsupportedFileTypeError,
)
from .file_records import FileRecord, build_catalog, select_covering  # noqa: E402

__all__ = [
    "DateTimeFormatError",
    "ExtractionEngine",
    "ExtractionError",
    "ExtractionRangeError",
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionWarning",
    "ExtractorConfig",
    "FileRecord",
    "InvalidFilenameWarning",
    "MalformedRowError",
    "MissingTagWarning",
    "OutOfOrderRowsWarning",
    "RenamedTagWarning",
    "TimeWindow",
    "UnsupportedFileTypeError",
    "build_catalog",
    "load_config",
    "select_covering",
]
