"""Tools package: command execution and environment utilities."""

from testbot.infra.tools.command_runner import CommandResult, CommandRunner
from testbot.infra.tools.env import USER_CONFIG_DIR, get_logs_dir, get_report_dir

__all__ = [
    "USER_CONFIG_DIR",
    "CommandResult",
    "CommandRunner",
    "get_logs_dir",
    "get_report_dir",
]
