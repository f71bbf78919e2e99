"""Decide whether an add-on needs installing or upgrading.

What was last applied is recorded as a JSON annotation on the system
namespace, one key per add-on (``addons.k8s.io/<name>``). It is read fresh
on every call.
"""

import json
import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from steward.channels.catalog import RollingUpdateScope
from steward.channels.menu import Addon
from steward.channels.versions import VersionedIdentity, parse_version, replaces
from steward.cluster.accessors import ClusterStateAccessor
from steward.utils.errors import InstalledStateError, VersionParseError

logger = logging.getLogger(__name__)

ANNOTATION_PREFIX = "addons.k8s.io/"
DEFAULT_NAMESPACE = "kube-system"


class InstalledState(BaseModel):
    """Snapshot of the last successful apply of an add-on."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str | None = None
    manifest_hash: str = Field("", alias="manifestHash")
    channel: str = ""
    id: str = ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_defaults=True)


@dataclass(frozen=True)
class RequiredUpdate:
    """Planned change for one add-on.

    ``existing_version`` is None for a fresh install.
    """

    addon_name: str
    existing_version: VersionedIdentity | None
    new_version: VersionedIdentity
    install_pki: bool
    rolling_update_scope: RollingUpdateScope

    @property
    def is_fresh_install(self) -> bool:
        return self.existing_version is None


def annotation_key(addon_name: str) -> str:
    return ANNOTATION_PREFIX + addon_name


def read_installed_state(
    addon_name: str, accessor: ClusterStateAccessor, namespace: str = DEFAULT_NAMESPACE
) -> InstalledState | None:
    """Read the installed-state annotation for an add-on.

    Args:
        addon_name: Add-on name
        accessor: Namespace annotation accessor
        namespace: Namespace holding the annotations

    Returns:
        InstalledState, or None if the add-on was never installed

    Raises:
        InstalledStateError: If the annotation is not valid JSON
    """
    annotations = accessor.get_namespace_annotations(namespace) or {}
    raw = annotations.get(annotation_key(addon_name))
    if raw is None:
        return None

    try:
        return InstalledState.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise InstalledStateError(
            f"error parsing installed state annotation for addon {addon_name!r}: {e}"
        ) from e


def write_installed_state(
    addon: Addon, accessor: ClusterStateAccessor, namespace: str = DEFAULT_NAMESPACE
) -> InstalledState:
    """Record that ``addon`` has just been applied."""
    state = InstalledState(
        version=addon.spec.version,
        manifest_hash=addon.spec.manifest_hash,
        channel=addon.channel_location,
        id=addon.spec.variant_id,
    )
    accessor.set_namespace_annotation(namespace, annotation_key(addon.name), state.to_json())
    logger.debug(f"[{addon.name}] recorded installed state {state.to_json()}")
    return state


def get_required_updates(
    addon: Addon, accessor: ClusterStateAccessor, namespace: str = DEFAULT_NAMESPACE
) -> RequiredUpdate | None:
    """Compute what, if anything, must change for ``addon``.

    - Never installed: a fresh install, with PKI if the add-on needs it.
    - Installed: compare version and manifest hash (variant id is not
      persisted, so both sides use an empty id). No replacement means no
      update; otherwise an upgrade, which never bootstraps PKI.

    Args:
        addon: Selected add-on
        accessor: Namespace annotation accessor
        namespace: Namespace holding the annotations

    Returns:
        RequiredUpdate, or None when the cluster is up to date

    Raises:
        InstalledStateError: If the persisted state cannot be interpreted
    """
    spec = addon.spec
    installed = read_installed_state(addon.name, accessor, namespace)

    if installed is None:
        logger.info(f"[{addon.name}] not installed, will install {spec.version}")
        return RequiredUpdate(
            addon_name=addon.name,
            existing_version=None,
            new_version=spec.versioned_identity,
            install_pki=spec.needs_pki,
            rolling_update_scope=spec.rolling_update_scope,
        )

    try:
        installed_version = parse_version(installed.version)
    except VersionParseError as e:
        raise InstalledStateError(
            f"addon {addon.name!r} has unparseable installed version {installed.version!r}: {e}"
        ) from e

    old = VersionedIdentity(installed_version, "", installed.manifest_hash)
    new = VersionedIdentity(spec.versioned_identity.version, "", spec.manifest_hash)

    if not replaces(old, new):
        logger.debug(f"[{addon.name}] up to date at {old}")
        return None

    logger.info(f"[{addon.name}] update required: {old} -> {new}")
    return RequiredUpdate(
        addon_name=addon.name,
        existing_version=old,
        new_version=new,
        install_pki=False,
        rolling_update_scope=spec.rolling_update_scope,
    )
