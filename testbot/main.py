#!/usr/bin/env python3
"""
test-bot: CI test harness for package taps.

This module is a thin shim that exposes the CLI app from testbot.cli.
The actual implementation lives in testbot/cli/cli.py.

Usage:
    test-bot run [OPTIONS] [TARGETS]...
    test-bot report [PATH]
"""

from .cli import bootstrap

# Load ~/.config/testbot/.env before the app reads the environment
bootstrap()

from .cli import app  # noqa: E402

if __name__ == "__main__":
    app()
