"""binforge - build and release orchestrator for a cross-compiled Go binary."""

__version__ = "0.1.0"
