"""Log output helpers."""

from testbot.infra.io.log_output.debug_log import (
    cleanup_debug_logging,
    configure_debug_logging,
)

__all__ = ["cleanup_debug_logging", "configure_debug_logging"]
