"""Per-run debug log files.

Each run attaches a DEBUG FileHandler to the "testbot" logger so the
subprocess-level detail that never reaches the console is kept on disk.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

_HANDLER_PREFIX = "testbot_debug_"


def configure_debug_logging(logs_dir: Path, run_id: str) -> Path | None:
    """Attach a debug log file for this run.

    Args:
        logs_dir: Directory to write the log file into (created if missing).
        run_id: Run ID (UUID) used in the file and handler names.

    Returns:
        Path of the log file, or None if it could not be created.
    """
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S")
        log_path = logs_dir / f"{timestamp}_{run_id[:8]}.debug.log"

        handler = logging.FileHandler(log_path)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        handler.set_name(f"{_HANDLER_PREFIX}{run_id}")

        package_logger = logging.getLogger("testbot")
        package_logger.setLevel(logging.DEBUG)

        # Remove handlers left over from earlier runs in this process
        for existing in package_logger.handlers[:]:
            if getattr(existing, "name", "").startswith(_HANDLER_PREFIX):
                existing.close()
                package_logger.removeHandler(existing)

        package_logger.addHandler(handler)

        return log_path
    except OSError:
        # Best-effort: read-only filesystems and the like run without a file
        return None


def cleanup_debug_logging(run_id: str) -> bool:
    """Remove and close the debug handler of a completed run.

    Returns:
        True if a handler was found and cleaned up, False otherwise.
    """
    package_logger = logging.getLogger("testbot")
    handler_name = f"{_HANDLER_PREFIX}{run_id}"

    for handler in package_logger.handlers[:]:
        if getattr(handler, "name", "") == handler_name:
            handler.close()
            package_logger.removeHandler(handler)
            return True

    return False
