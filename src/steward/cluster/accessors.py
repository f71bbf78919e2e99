"""Interfaces for the cluster collaborators the add-on pipeline talks to.

The pipeline never caches what it reads through these: every call is a
fresh round trip, and every write is the new source of truth.

Create operations raise ``AlreadyExistsError`` when the object is present;
get operations return ``None`` when it is absent. Any other failure is a
``ClusterAccessError``.
"""

from abc import ABC, abstractmethod
from typing import Any


class ClusterStateAccessor(ABC):
    """Reads and writes annotations on a namespace."""

    @abstractmethod
    def get_namespace_annotations(self, namespace: str) -> dict[str, str]:
        """Return the namespace's annotations (empty dict if it has none)."""
        pass

    @abstractmethod
    def set_namespace_annotation(self, namespace: str, key: str, value: str) -> None:
        """Set (or overwrite) one annotation on the namespace."""
        pass


class NodeAccessor(ABC):
    """Lists nodes and annotates them."""

    @abstractmethod
    def list_nodes(self) -> list[dict[str, Any]]:
        """Return node objects (at least ``metadata.name`` and ``metadata.labels``)."""
        pass

    @abstractmethod
    def annotate_node(self, name: str, key: str, value: str) -> None:
        """Set (or overwrite) one annotation on a node."""
        pass


class SecretAccessor(ABC):
    """Reads and creates secrets."""

    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def create_secret(self, namespace: str, secret: dict[str, Any]) -> None:
        pass


class IssuerAccessor(ABC):
    """Reads and creates cert-manager issuers."""

    @abstractmethod
    def get_issuer(self, namespace: str, name: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def create_issuer(self, namespace: str, issuer: dict[str, Any]) -> None:
        pass


class ManifestApplier(ABC):
    """Applies a rendered manifest to the cluster."""

    @abstractmethod
    def apply_manifest(self, manifest: bytes) -> None:
        pass


class ManifestSource(ABC):
    """Fetches raw manifest bytes from a catalog-relative location."""

    @abstractmethod
    def read(self, location: str) -> bytes:
        pass


class AssetRemapper(ABC):
    """Rewrites image and file references in a manifest to their mirrored locations."""

    @abstractmethod
    def remap_manifest(self, manifest: bytes) -> bytes:
        pass
