"""Infrastructure layer package: subprocesses, environment, console and reports."""
