"""Pytest fixtures for testing Steward."""

import os
from collections.abc import Callable
from unittest.mock import patch

import pytest

from steward.channels.catalog import AddonSpec, RollingUpdateScope
from steward.channels.menu import Addon
from steward.channels.versions import VersionedIdentity
from steward.config import StewardConfig
from tests.mocks import FakeCluster, make_node


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """Create a fake cluster with one control-plane node and one worker.

    Returns:
        FakeCluster with an empty kube-system namespace
    """
    return FakeCluster(
        nodes=[
            make_node("cp", "node-role.kubernetes.io/master"),
            make_node("node", "node-role.kubernetes.io/node"),
        ]
    )


@pytest.fixture
def make_addon() -> Callable[..., Addon]:
    """Factory for add-ons as a catalog would select them.

    Returns:
        Callable building an Addon from keyword arguments
    """

    def _make_addon(
        name: str = "test",
        version: str = "1.0.0",
        variant_id: str = "",
        manifest_hash: str = "",
        kubernetes_version: str = "",
        needs_pki: bool = False,
        scope: RollingUpdateScope = RollingUpdateScope.NONE,
        selector: dict[str, str] | None = None,
        channel_name: str = "test",
        channel_location: str = "file:///x/y/z/channel.yaml",
        manifest_location: str = "",
    ) -> Addon:
        spec = AddonSpec(
            name=name,
            versioned_identity=VersionedIdentity.from_strings(version, variant_id, manifest_hash),
            version_text=version,
            kubernetes_version=kubernetes_version,
            needs_pki=needs_pki,
            rolling_update_scope=scope,
            selector=selector or {},
            manifest=f"{name}/v{version}.yaml",
            manifest_location=manifest_location or f"file:///x/y/z/{name}/v{version}.yaml",
        )
        return Addon(
            name=name,
            channel_name=channel_name,
            channel_location=channel_location,
            spec=spec,
        )

    return _make_addon


@pytest.fixture
def steward_config() -> StewardConfig:
    """Create a configuration with no environment influence.

    Returns:
        StewardConfig with test values
    """
    with patch.dict(os.environ, {}, clear=True):
        config = StewardConfig(
            cluster_name="test.example.com",
            kubernetes_version="1.29.0",
            aws_account_id="123456789012",
        )

    return config
