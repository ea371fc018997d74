"""Core layer package.

Shared value types and protocols used by the domain, infra and orchestration
layers. Nothing in here depends on another testbot package.
"""
