"""Reconcile a menu of add-ons against a cluster."""

import logging
from typing import Any

from steward.channels.menu import Addon, AddonMenu
from steward.channels.pki import install_pki
from steward.channels.rolling import add_needs_update_label
from steward.channels.updates import get_required_updates, write_installed_state
from steward.cluster.accessors import AssetRemapper, ManifestSource
from steward.cluster.kubectl import KubectlClient
from steward.config import StewardConfig
from steward.manifests.remap import ManifestRemapper
from steward.utils.errors import StewardError

logger = logging.getLogger(__name__)


class AddonReconciler:
    """Brings every add-on of a menu up to date on one cluster."""

    def __init__(
        self,
        config: StewardConfig,
        client: KubectlClient,
        manifest_source: ManifestSource,
        asset_remapper: AssetRemapper,
    ):
        """Initialize reconciler.

        Args:
            config: Steward configuration
            client: Cluster client; any object implementing the state, node,
                secret, issuer and applier accessors works
            manifest_source: Reads manifest bytes from catalog locations
            asset_remapper: Rewrites image references
        """
        self.config = config
        self.client = client
        self.manifest_source = manifest_source
        self.remapper = ManifestRemapper(config.cluster_context(), asset_remapper)
        self.namespace = config.system_namespace

    def reconcile_addon(self, addon: Addon) -> dict[str, Any]:
        """Install or upgrade one add-on if needed.

        Returns:
            Result dict with success, action, message and node marking details

        Raises:
            StewardError: If planning, remapping, applying or PKI bootstrap fails
        """
        required = get_required_updates(addon, self.client, self.namespace)
        if required is None:
            return {
                "success": True,
                "addon": addon.name,
                "action": "skipped",
                "message": f"{addon.name} is up to date at {addon.version}",
            }

        action = "install" if required.is_fresh_install else "upgrade"
        logger.info(f"[{addon.name}] {action} to {required.new_version}")

        manifest = self.manifest_source.read(addon.spec.manifest_location)
        manifest = self.remapper.remap(addon.spec, manifest)
        self.client.apply_manifest(manifest)

        marking = add_needs_update_label(required, self.client)

        if required.install_pki:
            install_pki(addon.name, self.client, self.client, self.namespace)

        write_installed_state(addon, self.client, self.namespace)

        return {
            "success": True,
            "addon": addon.name,
            "action": action,
            "message": f"{addon.name} {action} to {addon.version} complete",
            "nodes_marked": marking.marked,
            "nodes_failed": marking.failed,
        }

    def reconcile(self, menu: AddonMenu) -> dict[str, Any]:
        """Reconcile every add-on of the menu, in name order.

        One add-on failing does not stop the others.

        Returns:
            Dict with installation results:
            - success: bool (True if nothing failed)
            - results: dict of addon_name -> result
            - failed: list of failed addon names
            - message: summary message
        """
        if not len(menu):
            return {
                "success": True,
                "results": {},
                "failed": [],
                "message": "No addons to reconcile",
            }

        results: dict[str, Any] = {}
        failed: list[str] = []

        logger.info(f"Reconciling {len(menu)} addon(s) in namespace '{self.namespace}'")

        for addon in menu.sorted_addons():
            try:
                results[addon.name] = self.reconcile_addon(addon)
            except StewardError as e:
                logger.error(f"[{addon.name}] reconcile failed: {e}")
                failed.append(addon.name)
                results[addon.name] = {
                    "success": False,
                    "addon": addon.name,
                    "error": str(e),
                    "message": f"{addon.name} reconcile failed: {e}",
                }

        total = len(results)
        changed = sum(1 for r in results.values() if r.get("action") in ("install", "upgrade"))
        skipped = sum(1 for r in results.values() if r.get("action") == "skipped")
        pending_nodes = sum(len(r.get("nodes_failed") or {}) for r in results.values())

        message = f"Addons: {changed}/{total} changed"
        if skipped:
            message += f", {skipped} up to date"
        if failed:
            message += f", {len(failed)} failed: {', '.join(failed)}"
        if pending_nodes:
            message += f", {pending_nodes} node(s) to mark on next pass"

        return {
            "success": not failed,
            "results": results,
            "failed": failed,
            "message": message,
        }
