"""Domain layer package.

This package contains the step engine and the phase bodies:
- step: a single external command with status, timing and captured output
- sanitize: report-safe output sanitization and truncation
- command_display: normalized command lines for display
- annotations: CI annotations and foldable output groups
- target_run: per-target step collection and run-wide aggregate
- resolution: target resolution with a bounded retry
- phases: the closed set of phase bodies
- config: testbot.yaml phase command configuration
"""
