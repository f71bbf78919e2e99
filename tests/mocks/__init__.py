"""Mock collaborators for testing."""

from tests.mocks.mock_cluster import FakeCluster, make_node

__all__ = ["FakeCluster", "make_node"]
