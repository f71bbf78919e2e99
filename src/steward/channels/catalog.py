"""Add-on catalog (channel) parsing.

A catalog is a YAML document of kind ``Addons`` listing versioned add-on
records. Parsing is all-or-nothing: one record with a bad version rejects
the whole catalog, since applying half a catalog is unsafe.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urljoin

import semver
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from steward.channels.menu import Addon, AddonMenu
from steward.channels.versions import VersionedIdentity, matches, parse_version, replaces
from steward.utils.errors import CatalogParseError, ConstraintParseError, VersionParseError

logger = logging.getLogger(__name__)


class RollingUpdateScope(str, Enum):
    """Which nodes must be restarted after an add-on upgrade."""

    NONE = "none"
    ALL = "all"
    CONTROL_PLANE = "control-plane"
    WORKER = "worker"

    @classmethod
    def parse(cls, value: str | None) -> "RollingUpdateScope":
        """Parse a catalog value; an empty value means no rolling update."""
        if not value:
            return cls.NONE
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(
                f"invalid rolling update scope {value!r} (expected one of: {allowed})"
            ) from None


class AddonRecord(BaseModel):
    """One add-on entry as written in the catalog document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    version: str | int | float | None = None
    id: str = ""
    kubernetes_version: str = Field("", alias="kubernetesVersion")
    needs_pki: bool = Field(False, alias="needsPKI")
    needs_rolling_update: str = Field("", alias="needsRollingUpdate")
    manifest: str = ""
    manifest_hash: str = Field("", alias="manifestHash")
    selector: dict[str, str] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_is_string(cls, value: Any) -> Any:
        # unquoted `id: 1.10` would already have lost its trailing zero
        if isinstance(value, (int, float)):
            raise ValueError("id must be a quoted string")
        return value

    @field_validator(
        "id",
        "kubernetes_version",
        "needs_rolling_update",
        "manifest",
        "manifest_hash",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("selector", mode="before")
    @classmethod
    def _none_to_dict(cls, value: Any) -> Any:
        return {} if value is None else value


class AddonsBody(BaseModel):
    addons: list[AddonRecord] = []


class CatalogDocument(BaseModel):
    """Top-level catalog document."""

    kind: str = "Addons"
    metadata: dict[str, Any] = {}
    spec: AddonsBody = Field(default_factory=AddonsBody)


@dataclass(frozen=True)
class AddonSpec:
    """Declarative description of one add-on as published in a catalog."""

    name: str
    versioned_identity: VersionedIdentity
    version_text: str = ""
    kubernetes_version: str = ""
    needs_pki: bool = False
    rolling_update_scope: RollingUpdateScope = RollingUpdateScope.NONE
    selector: dict[str, str] = field(default_factory=dict, hash=False)
    manifest: str = ""
    manifest_location: str = ""

    @property
    def version(self) -> str:
        return str(self.versioned_identity.version)

    @property
    def published_version(self) -> str:
        """The version exactly as written in the catalog."""
        return self.version_text or self.version

    @property
    def manifest_hash(self) -> str:
        return self.versioned_identity.content_hash

    @property
    def variant_id(self) -> str:
        return self.versioned_identity.variant_id


@dataclass
class Catalog:
    """A parsed catalog: its name, where it came from, and its add-on specs."""

    channel_name: str
    location: str
    addons: list[AddonSpec] = field(default_factory=list)

    def get_current(self, kubernetes_version: semver.Version) -> AddonMenu:
        """Select the add-ons that apply to a cluster running ``kubernetes_version``.

        Records whose constraint does not match are dropped. When several
        records share a name, the occupant is chosen with ``replaces``.
        A constraint that fails to parse is logged and the record skipped.

        Args:
            kubernetes_version: Cluster Kubernetes version

        Returns:
            AddonMenu with one add-on per name
        """
        menu = AddonMenu()
        for spec in self.addons:
            try:
                if not matches(spec.kubernetes_version, kubernetes_version):
                    continue
            except ConstraintParseError as e:
                logger.warning(
                    f"[{spec.name}] ignoring addon with invalid kubernetesVersion "
                    f"{spec.kubernetes_version!r}: {e}"
                )
                continue

            existing = menu.get(spec.name)
            identity = spec.versioned_identity
            if existing is None or replaces(existing.spec.versioned_identity, identity):
                menu.addons[spec.name] = Addon(
                    name=spec.name,
                    channel_name=self.channel_name,
                    channel_location=self.location,
                    spec=spec,
                )
        return menu


def _load_document(data: bytes) -> CatalogDocument:
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise CatalogParseError(f"error parsing addons document: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise CatalogParseError("error parsing addons document: expected a mapping at top level")

    try:
        return CatalogDocument.model_validate(raw)
    except ValidationError as e:
        raise CatalogParseError(f"error parsing addons document: {e}") from e


def parse_addons(channel_name: str, location: str, data: bytes) -> Catalog:
    """Parse a raw catalog document.

    Args:
        channel_name: Name used to identify the catalog source
        location: URL or path the document was read from; manifest paths
            are resolved against it
        data: Raw document bytes

    Returns:
        Parsed Catalog

    Raises:
        CatalogParseError: If the document is malformed or any add-on has an
            unparseable version
    """
    document = _load_document(data)

    specs = []
    for record in document.spec.addons:
        if record.version is not None and not isinstance(record.version, str):
            raise CatalogParseError(
                f'addon "{record.name}" has unparseable version "{record.version}": '
                "version must be a quoted string"
            )
        try:
            version = parse_version(record.version)
        except VersionParseError as e:
            raise CatalogParseError(
                f'addon "{record.name}" has unparseable version "{record.version or ""}": {e}'
            ) from e

        try:
            scope = RollingUpdateScope.parse(record.needs_rolling_update)
        except ValueError as e:
            raise CatalogParseError(f'addon "{record.name}": {e}') from e

        specs.append(
            AddonSpec(
                name=record.name,
                versioned_identity=VersionedIdentity(version, record.id, record.manifest_hash),
                version_text=record.version,
                kubernetes_version=record.kubernetes_version,
                needs_pki=record.needs_pki,
                rolling_update_scope=scope,
                selector=dict(record.selector),
                manifest=record.manifest,
                manifest_location=urljoin(location, record.manifest) if record.manifest else "",
            )
        )

    logger.debug(f"Parsed {len(specs)} addon(s) from channel '{channel_name}' at {location}")
    return Catalog(channel_name=channel_name, location=location, addons=specs)
