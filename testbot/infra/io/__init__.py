"""I/O helpers: environment configuration, console output and report files."""
