"""CLI package for testbot."""

from .cli import app, bootstrap

__all__ = ["app", "bootstrap"]
