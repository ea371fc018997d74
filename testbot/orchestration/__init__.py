"""Orchestration layer package: phase runner, orchestrator and factory."""
