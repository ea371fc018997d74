"""Environment configuration and loading for testbot.

Centralizes config paths and dotenv loading. load_user_env() runs once at
CLI bootstrap, before TestBotConfig.from_env() reads the environment.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# User config directory (stores .env)
USER_CONFIG_DIR = Path.home() / ".config" / "testbot"


def get_logs_dir() -> Path:
    """Get the logs directory, respecting TESTBOT_LOGS_DIR env var."""
    return Path(os.environ.get("TESTBOT_LOGS_DIR", str(USER_CONFIG_DIR / "logs")))


def get_report_dir() -> Path:
    """Get the report directory, respecting TESTBOT_REPORT_DIR env var."""
    return Path(os.environ.get("TESTBOT_REPORT_DIR", str(Path.cwd())))


def load_user_env() -> None:
    """Load environment from ${USER_CONFIG_DIR}/.env (~/.config/testbot/.env).

    Variables already set in the process environment win.
    """
    load_dotenv(dotenv_path=USER_CONFIG_DIR / ".env")
