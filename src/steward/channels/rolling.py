"""Mark nodes that must be restarted after an add-on upgrade."""

import logging
from dataclasses import dataclass, field
from typing import Any

from steward.channels.catalog import RollingUpdateScope
from steward.channels.updates import RequiredUpdate
from steward.cluster.accessors import NodeAccessor
from steward.utils.errors import ClusterAccessError

logger = logging.getLogger(__name__)

NEEDS_UPDATE_ANNOTATION = "kops.k8s.io/needs-update"

CONTROL_PLANE_ROLE_LABELS = (
    "node-role.kubernetes.io/control-plane",
    "node-role.kubernetes.io/master",
)
WORKER_ROLE_LABELS = (
    "node-role.kubernetes.io/node",
    "node-role.kubernetes.io/worker",
)


@dataclass
class NodeMarkingResult:
    """Nodes marked for restart, and nodes whose marking failed (name -> error)."""

    marked: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


def _node_in_scope(node: dict[str, Any], scope: RollingUpdateScope) -> bool:
    labels = (node.get("metadata") or {}).get("labels") or {}
    if scope == RollingUpdateScope.ALL:
        return True
    if scope == RollingUpdateScope.CONTROL_PLANE:
        return any(label in labels for label in CONTROL_PLANE_ROLE_LABELS)
    if scope == RollingUpdateScope.WORKER:
        return any(label in labels for label in WORKER_ROLE_LABELS)
    return False


def add_needs_update_label(
    required_update: RequiredUpdate, node_accessor: NodeAccessor
) -> NodeMarkingResult:
    """Annotate the nodes in the update's rolling-update scope as needing a restart.

    Fresh installs never mark nodes: new nodes get the add-on when they are
    provisioned. A failed write on one node is logged and recorded, and does
    not stop the others; the next reconciliation retries it.

    Args:
        required_update: Planned update for the add-on
        node_accessor: Node accessor

    Returns:
        NodeMarkingResult listing marked and failed nodes

    Raises:
        ClusterAccessError: If nodes cannot be listed
    """
    result = NodeMarkingResult()
    scope = required_update.rolling_update_scope

    if required_update.is_fresh_install or scope == RollingUpdateScope.NONE:
        return result

    for node in node_accessor.list_nodes():
        name = (node.get("metadata") or {}).get("name")
        if not name or not _node_in_scope(node, scope):
            continue

        try:
            node_accessor.annotate_node(name, NEEDS_UPDATE_ANNOTATION, "")
            result.marked.append(name)
        except ClusterAccessError as e:
            logger.warning(
                f"[{required_update.addon_name}] failed to mark node '{name}' for update: {e}"
            )
            result.failed[name] = str(e)

    logger.info(
        f"[{required_update.addon_name}] marked {len(result.marked)} node(s) for rolling update "
        f"(scope={scope.value})"
    )
    return result
