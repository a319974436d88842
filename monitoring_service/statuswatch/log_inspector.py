"""Default log source inspection: is the log file there and being written?"""

import logging
from typing import Callable

from statuswatch.snapshots import LogCheckResult

logger = logging.getLogger("log_inspector")

LogInspector = Callable[[str], LogCheckResult]


def inspect_log_file(path: str) -> LogCheckResult:
    """Count the non-blank lines of ``path``.

    The check fails when the file is missing, unreadable or empty. Failures
    are reported in the result, never raised.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as fh:
            entries = sum(1 for line in fh if line.strip())
    except FileNotFoundError:
        logger.warning("Log file not found: %s", path)
        return LogCheckResult(success=False, found_entries=0, error=f"Log file not found: {path}")
    except OSError as exc:
        logger.warning("Could not read log file %s: %s", path, exc)
        return LogCheckResult(success=False, found_entries=0, error=f"Could not read log file: {exc}")

    if entries == 0:
        return LogCheckResult(success=False, found_entries=0, error="Log file contains no entries")
    return LogCheckResult(success=True, found_entries=entries)
