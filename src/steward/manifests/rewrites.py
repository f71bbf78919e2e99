"""Structural rewrites for specific well-known add-ons.

Each rewrite receives the add-on spec, the cluster context and the decoded
objects, and edits the objects in place.
"""

import logging
from typing import TYPE_CHECKING, Callable

from steward.manifests.context import ClusterContext
from steward.manifests.objects import KubeObject
from steward.manifests.service_accounts import (
    DNS_CONTROLLER_SUBJECT,
    add_service_account_role,
    set_env,
)
from steward.utils.errors import CredentialInjectionError

if TYPE_CHECKING:
    from steward.channels.catalog import AddonSpec

logger = logging.getLogger(__name__)

DNS_CONTROLLER_ADDON = "dns-controller.addons.k8s.io"

AddonRewrite = Callable[["AddonSpec", ClusterContext, list[KubeObject]], None]


def remap_dns_controller(
    addon: "AddonSpec", context: ClusterContext, objects: list[KubeObject]
) -> None:
    """Give dns-controller the cluster name and, with IAM enabled, its own role."""
    for obj in objects:
        if obj.kind != "Deployment" or obj.name != "dns-controller":
            continue

        pod_spec = obj.get("spec", "template", "spec")
        if pod_spec is None:
            continue
        if not isinstance(pod_spec, dict):
            raise CredentialInjectionError("dns-controller spec.template.spec must be a mapping")

        if context.cluster_name:
            for container in pod_spec.get("containers") or []:
                if not isinstance(container, dict):
                    raise CredentialInjectionError("dns-controller container must be a mapping")
                set_env(container, "CLUSTER_NAME", context.cluster_name)

        if context.use_service_account_iam:
            add_service_account_role(context, pod_spec, DNS_CONTROLLER_SUBJECT)
            logger.debug(f"[{addon.name}] attached dns-controller service account role")


ADDON_REWRITES: dict[str, AddonRewrite] = {
    DNS_CONTROLLER_ADDON: remap_dns_controller,
}
