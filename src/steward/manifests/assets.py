"""Asset remappers: rewrite image references to where the cluster should pull them."""

import logging
from typing import Any

from steward.cluster.accessors import AssetRemapper
from steward.manifests.objects import dump_objects, load_objects

logger = logging.getLogger(__name__)

_POD_CONTAINER_KEYS = ("containers", "initContainers", "ephemeralContainers")
_POD_SPEC_PATHS = (
    ("spec", "template", "spec"),
    ("spec", "jobTemplate", "spec", "template", "spec"),
    ("spec",),
)


class NoopAssetRemapper(AssetRemapper):
    """Leaves manifests unchanged."""

    def remap_manifest(self, manifest: bytes) -> bytes:
        return manifest


class RegistryMirrorRemapper(AssetRemapper):
    """Point every container image at a mirror registry.

    ``registry.k8s.io/dns/controller:1.0`` with mirror ``mirror.local:5000``
    becomes ``mirror.local:5000/dns/controller:1.0``. Images without a
    registry host are treated as Docker Hub images.
    """

    def __init__(self, registry: str):
        if not registry:
            raise ValueError("mirror registry must not be empty")
        self.registry = registry.rstrip("/")

    def remap_image(self, image: str) -> str:
        if image.startswith(self.registry + "/"):
            return image

        first, _, rest = image.partition("/")
        if rest and ("." in first or ":" in first or first == "localhost"):
            path = rest
        elif rest:
            path = image
        else:
            path = f"library/{image}"
        return f"{self.registry}/{path}"

    def _remap_pod_spec(self, pod_spec: dict[str, Any]) -> int:
        count = 0
        for key in _POD_CONTAINER_KEYS:
            for container in pod_spec.get(key) or []:
                image = container.get("image") if isinstance(container, dict) else None
                if not image:
                    continue
                remapped = self.remap_image(image)
                if remapped != image:
                    logger.debug(f"Remapped image {image} -> {remapped}")
                    container["image"] = remapped
                    count += 1
        return count

    def remap_manifest(self, manifest: bytes) -> bytes:
        objects = load_objects(manifest)
        count = 0
        for obj in objects:
            for path in _POD_SPEC_PATHS:
                pod_spec = obj.get(*path)
                if isinstance(pod_spec, dict) and "containers" in pod_spec:
                    count += self._remap_pod_spec(pod_spec)
                    break
        logger.debug(f"Remapped {count} image reference(s) to {self.registry}")
        return dump_objects(objects)
