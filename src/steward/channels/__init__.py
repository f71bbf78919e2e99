"""Add-on channels: catalogs, menus, update planning and bootstrap.

This package decides which add-on version a cluster should run and what
has to happen to get there.
"""

from steward.channels.catalog import AddonSpec, Catalog, RollingUpdateScope, parse_addons
from steward.channels.menu import Addon, AddonMenu
from steward.channels.pki import install_pki
from steward.channels.rolling import NodeMarkingResult, add_needs_update_label
from steward.channels.updates import InstalledState, RequiredUpdate, get_required_updates
from steward.channels.versions import VersionedIdentity, matches, parse_version, replaces

__all__ = [
    "Addon",
    "AddonMenu",
    "AddonSpec",
    "Catalog",
    "InstalledState",
    "NodeMarkingResult",
    "RequiredUpdate",
    "RollingUpdateScope",
    "VersionedIdentity",
    "add_needs_update_label",
    "get_required_updates",
    "install_pki",
    "matches",
    "parse_addons",
    "parse_version",
    "replaces",
]
