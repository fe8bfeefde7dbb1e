"""Test utilities for roost routers.

    from roost.testing import TestClient
"""

from roost.testing.client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
