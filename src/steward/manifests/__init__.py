"""Manifest rewriting applied to add-on manifests before they are applied."""

from steward.manifests.context import ClusterContext
from steward.manifests.remap import ManifestRemapper, remap_addon_manifest

__all__ = ["ClusterContext", "ManifestRemapper", "remap_addon_manifest"]
