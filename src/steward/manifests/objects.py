"""Load, inspect and serialize multi-document Kubernetes manifests."""

import logging
from typing import Any

import yaml

from steward.utils.errors import ManifestLoadError

logger = logging.getLogger(__name__)


class KubeObject:
    """Thin wrapper around one decoded Kubernetes object."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    @property
    def kind(self) -> str:
        return self.data.get("kind") or ""

    @property
    def api_version(self) -> str:
        return self.data.get("apiVersion") or ""

    @property
    def name(self) -> str:
        return (self.data.get("metadata") or {}).get("name") or ""

    def get(self, *path: str) -> Any:
        """Return the value at ``path``, or None if any segment is missing."""
        current: Any = self.data
        for segment in path:
            if not isinstance(current, dict):
                return None
            current = current.get(segment)
            if current is None:
                return None
        return current

    def set(self, value: Any, *path: str) -> None:
        """Set the value at ``path``, creating intermediate mappings."""
        current = self.data
        for segment in path[:-1]:
            child = current.get(segment)
            if child is None:
                child = {}
                current[segment] = child
            elif not isinstance(child, dict):
                raise ManifestLoadError(
                    f"cannot set {'.'.join(path)} on {self.kind}/{self.name}: "
                    f"{segment} is not a mapping"
                )
            current = child
        current[path[-1]] = value

    def __repr__(self) -> str:
        return f"KubeObject({self.api_version} {self.kind}/{self.name})"


def load_objects(manifest: bytes | str) -> list[KubeObject]:
    """Split a multi-document YAML manifest into objects.

    Empty documents are dropped.

    Raises:
        ManifestLoadError: If the YAML is invalid or a document is not a mapping
    """
    try:
        documents = list(yaml.safe_load_all(manifest))
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"error parsing manifest: {e}") from e

    objects = []
    for i, document in enumerate(documents):
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ManifestLoadError(
                f"manifest document {i} is a {type(document).__name__}, expected an object"
            )
        objects.append(KubeObject(document))
    return objects


def dump_objects(objects: list[KubeObject]) -> bytes:
    """Serialize objects back into a multi-document YAML manifest."""
    text = yaml.safe_dump_all(
        [o.data for o in objects],
        default_flow_style=False,
        sort_keys=False,
        explicit_start=False,
    )
    return text.encode("utf-8")
