"""In-memory fake implementations for testing.

Fakes implement the real protocol contracts, so interface mismatches show
up at test time, and they behave deterministically without mocks.

Available fakes:
- FakeCommandRunner: Scripted command execution with call recording
- FakeTargetResolver: Resolves every target, or fails for chosen ones

Usage:
    from tests.fakes import FakeCommandRunner

    def test_something():
        runner = FakeCommandRunner()
        runner.respond(("false",), returncode=1)
"""

from tests.fakes.command_runner import FakeCommandRunner, UnregisteredCommandError
from tests.fakes.resolver import FakeTargetResolver

__all__ = ["FakeCommandRunner", "FakeTargetResolver", "UnregisteredCommandError"]
