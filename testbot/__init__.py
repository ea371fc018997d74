"""testbot: continuous-integration test harness for package-manager repositories."""

__version__ = "0.1.0"
__all__ = ["__version__"]
