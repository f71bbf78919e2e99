"""Rewrite a rendered add-on manifest before it is applied.

Steps, in order: add-on specific rewrites, standard labels, service-account
credential bindings, serialization, and finally the asset remapper.
"""

import logging
from typing import TYPE_CHECKING, Any

from steward.cluster.accessors import AssetRemapper
from steward.manifests.context import ClusterContext
from steward.manifests.objects import KubeObject, dump_objects, load_objects
from steward.manifests.rewrites import ADDON_REWRITES
from steward.manifests.service_accounts import (
    add_service_account_role,
    get_wellknown_service_account,
)
from steward.utils.errors import (
    AssetRemapError,
    CredentialInjectionError,
    LabelConflictError,
    ManifestError,
)

if TYPE_CHECKING:
    from steward.channels.catalog import AddonSpec

logger = logging.getLogger(__name__)

LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_ADDON_NAME = "addon.kops.k8s.io/name"
LABEL_ADDON_VERSION = "addon.kops.k8s.io/version"


def add_labels(addon: "AddonSpec", objects: list[KubeObject], managed_by: str = "kops") -> None:
    """Stamp every object with the managed-by, add-on name/version and selector labels.

    Raises:
        LabelConflictError: If an object carries a selector label with another value
    """
    for obj in objects:
        metadata = obj.data.get("metadata")
        if metadata is None:
            metadata = {}
            obj.data["metadata"] = metadata
        if not isinstance(metadata, dict):
            raise ManifestError(f"failed to label {obj!r}: metadata is not a mapping")

        labels = metadata.get("labels")
        if labels is None:
            labels = {}
            metadata["labels"] = labels
        if not isinstance(labels, dict):
            raise ManifestError(f"failed to label {obj!r}: metadata.labels is not a mapping")

        labels[LABEL_MANAGED_BY] = managed_by
        labels[LABEL_ADDON_NAME] = addon.name
        labels[LABEL_ADDON_VERSION] = addon.published_version

        for key, value in addon.selector.items():
            existing = labels.get(key)
            if existing is not None and existing != value:
                raise LabelConflictError(key, expected=value, actual=existing)
            labels[key] = value


def _pod_spec(obj: KubeObject) -> dict[str, Any] | None:
    current: Any = obj.data
    for segment in ("spec", "template", "spec"):
        if current is None:
            return None
        if not isinstance(current, dict):
            raise CredentialInjectionError(
                f"failed to parse spec.template.spec from Deployment {obj.name!r}"
            )
        current = current.get(segment)
    if current is not None and not isinstance(current, dict):
        raise CredentialInjectionError(
            f"failed to parse spec.template.spec from Deployment {obj.name!r}"
        )
    return current


def add_service_account_roles(context: ClusterContext, objects: list[KubeObject]) -> None:
    """Attach credential bindings to Deployments running as a well-known service account.

    Does nothing unless service-account IAM is enabled for the cluster.

    Raises:
        CredentialInjectionError: If a Deployment's pod spec is malformed
    """
    if not context.use_service_account_iam:
        return

    for obj in objects:
        if obj.kind != "Deployment" or obj.api_version != "apps/v1":
            continue

        pod_spec = _pod_spec(obj)
        if pod_spec is None:
            continue

        subject = get_wellknown_service_account(pod_spec.get("serviceAccountName"))
        if subject is None:
            continue

        add_service_account_role(context, pod_spec, subject)
        obj.set(pod_spec, "spec", "template", "spec")
        logger.debug(f"Attached {subject.name} role to Deployment {obj.name!r}")


def remap_addon_manifest(
    addon: "AddonSpec",
    context: ClusterContext,
    asset_remapper: AssetRemapper,
    manifest: bytes,
) -> bytes:
    """Produce the manifest to apply for ``addon``.

    Args:
        addon: Add-on spec the manifest belongs to
        context: Cluster identity
        asset_remapper: Rewrites image and file references
        manifest: Rendered manifest

    Returns:
        Remapped manifest bytes

    Raises:
        ManifestError: If any step fails; the manifest is not applied
    """
    name = addon.name
    objects = load_objects(manifest)

    rewrite = ADDON_REWRITES.get(name)
    if rewrite is not None:
        rewrite(addon, context, objects)

    add_labels(addon, objects, managed_by=context.managed_by)

    try:
        add_service_account_roles(context, objects)
    except CredentialInjectionError as e:
        raise CredentialInjectionError(f"failed to add service account for {name!r}: {e}") from e

    manifest = dump_objects(objects)

    try:
        return asset_remapper.remap_manifest(manifest)
    except Exception as e:
        text = manifest.decode("utf-8", errors="replace")
        logger.info(f"invalid manifest: {text}")
        raise AssetRemapError(f"error remapping manifest {text}: {e}") from e


class ManifestRemapper:
    """Remaps manifests for one cluster with a fixed asset remapper."""

    def __init__(self, context: ClusterContext, asset_remapper: AssetRemapper):
        self.context = context
        self.asset_remapper = asset_remapper

    def remap(self, addon: "AddonSpec", manifest: bytes) -> bytes:
        return remap_addon_manifest(addon, self.context, self.asset_remapper, manifest)
