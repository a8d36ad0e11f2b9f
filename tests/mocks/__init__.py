"""Mock encryption backend for testing without a real scheme."""

from .mock_backend import MockPaillierBackend

__all__ = ["MockPaillierBackend"]
