"""Console logging helpers for testbot.

Colored, timestamped status lines plus Homebrew-style "==>" headlines for
step command lines.
"""

from datetime import datetime

# Global verbose setting (can be modified at runtime)
_verbose_enabled: bool = False


def set_verbose(enabled: bool) -> None:
    """Enable or disable verbose output globally."""
    global _verbose_enabled
    _verbose_enabled = enabled


def truncate_text(text: str, max_length: int) -> str:
    """Truncate text to max_length, adding ellipsis if truncated.

    Respects global verbose setting. If verbose is enabled,
    returns the original text unchanged.
    """
    if _verbose_enabled:
        return text
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


class Colors:
    """ANSI color codes for terminal output (bright variants)."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RED = "\033[91m"
    GRAY = "\033[90m"
    MUTED = "\033[90m"


def log(
    icon: str,
    message: str,
    color: str = Colors.RESET,
    dim: bool = False,
) -> None:
    """Print a timestamped status line."""
    style = Colors.MUTED if dim else ""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(
        f"{Colors.GRAY}{timestamp}{Colors.RESET} {style}{color}{icon} {message}{Colors.RESET}"
    )


def headline(text: str, color: str = Colors.BLUE) -> None:
    """Print a "==> text" headline."""
    print(f"{color}==>{Colors.RESET} {Colors.BOLD}{text}{Colors.RESET}")


def error_text(text: str) -> str:
    """Wrap text in the error color."""
    return f"{Colors.RED}{text}{Colors.RESET}"
