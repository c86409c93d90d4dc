"""Testing utilities for trill projects."""

from trill.testing.client import TestClient

__all__ = ["TestClient"]
