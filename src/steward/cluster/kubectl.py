"""Cluster accessors backed by the kubectl CLI."""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from steward.cluster.accessors import (
    ClusterStateAccessor,
    IssuerAccessor,
    ManifestApplier,
    NodeAccessor,
    SecretAccessor,
)
from steward.utils.errors import AlreadyExistsError, KubectlCommandError

logger = logging.getLogger(__name__)


class KubectlClient(
    ClusterStateAccessor, NodeAccessor, SecretAccessor, IssuerAccessor, ManifestApplier
):
    """Talks to a cluster by running kubectl commands."""

    def __init__(
        self,
        kubeconfig_path: Path | str | None = None,
        context: str | None = None,
        timeout: int = 60,
    ):
        """Initialize kubectl client.

        Args:
            kubeconfig_path: Optional kubeconfig file (kubectl default if unset)
            context: Optional kubeconfig context
            timeout: Per-command timeout in seconds
        """
        self.kubeconfig_path = Path(kubeconfig_path) if kubeconfig_path else None
        self.context = context
        self.timeout = timeout
        self._check_kubectl_available()

    def _check_kubectl_available(self) -> None:
        """Check if kubectl CLI is available.

        Raises:
            KubectlCommandError: If kubectl is not available
        """
        try:
            result = subprocess.run(
                ["kubectl", "version", "--client"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            if result.returncode != 0:
                raise KubectlCommandError("kubectl CLI is not available or not working correctly")
            logger.debug(f"kubectl version: {result.stdout.strip()}")
        except FileNotFoundError as e:
            raise KubectlCommandError(
                "kubectl CLI not found. Please install kubectl: "
                "https://kubernetes.io/docs/tasks/tools/install-kubectl/"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise KubectlCommandError("kubectl version check timed out") from e

    def _run_kubectl(
        self, args: list[str], input_data: str | None = None
    ) -> subprocess.CompletedProcess[str]:
        """Run a kubectl command.

        Args:
            args: Command arguments
            input_data: Optional stdin content

        Returns:
            Completed subprocess (callers check the return code)

        Raises:
            KubectlCommandError: If kubectl cannot be run or times out
        """
        cmd = ["kubectl"]
        if self.kubeconfig_path:
            cmd.extend(["--kubeconfig", str(self.kubeconfig_path)])
        if self.context:
            cmd.extend(["--context", self.context])
        cmd.extend(args)
        logger.debug(f"Running kubectl command: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                input=input_data,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise KubectlCommandError(
                f"kubectl command timed out after {self.timeout} seconds"
            ) from e
        except FileNotFoundError as e:
            raise KubectlCommandError("kubectl CLI not found in PATH") from e

    def _check(self, result: subprocess.CompletedProcess[str], action: str) -> None:
        if result.returncode != 0:
            error_msg = (result.stderr or result.stdout).strip()
            raise KubectlCommandError(f"Failed to {action}: {error_msg}")

    def _get_json(self, args: list[str], action: str) -> dict[str, Any] | None:
        """Run a kubectl get returning JSON; None if the object does not exist."""
        result = self._run_kubectl(["get", *args, "-o", "json"])
        if result.returncode != 0:
            if "NotFound" in (result.stderr or ""):
                return None
            self._check(result, action)

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise KubectlCommandError(f"Failed to parse kubectl output as JSON: {e}") from e

    def _create(self, obj: dict[str, Any], action: str) -> None:
        result = self._run_kubectl(["create", "-f", "-"], input_data=json.dumps(obj))
        if result.returncode != 0 and "AlreadyExists" in (result.stderr or ""):
            raise AlreadyExistsError(f"Failed to {action}: {result.stderr.strip()}")
        self._check(result, action)

    def get_namespace_annotations(self, namespace: str) -> dict[str, str]:
        data = self._get_json(["namespace", namespace], f"get namespace '{namespace}'")
        if data is None:
            raise KubectlCommandError(f"Namespace '{namespace}' not found")
        return data.get("metadata", {}).get("annotations") or {}

    def set_namespace_annotation(self, namespace: str, key: str, value: str) -> None:
        result = self._run_kubectl(
            ["annotate", "--overwrite", "namespace", namespace, f"{key}={value}"]
        )
        self._check(result, f"annotate namespace '{namespace}'")

    def list_nodes(self) -> list[dict[str, Any]]:
        data = self._get_json(["nodes"], "list nodes") or {}
        items = data.get("items", [])
        logger.debug(f"Found {len(items)} node(s)")
        return items

    def annotate_node(self, name: str, key: str, value: str) -> None:
        result = self._run_kubectl(["annotate", "--overwrite", "node", name, f"{key}={value}"])
        self._check(result, f"annotate node '{name}'")

    def get_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        return self._get_json(
            ["secret", name, "-n", namespace], f"get secret '{namespace}/{name}'"
        )

    def create_secret(self, namespace: str, secret: dict[str, Any]) -> None:
        secret = {**secret, "metadata": {**secret.get("metadata", {}), "namespace": namespace}}
        self._create(secret, f"create secret in '{namespace}'")

    def get_issuer(self, namespace: str, name: str) -> dict[str, Any] | None:
        return self._get_json(
            ["issuers.cert-manager.io", name, "-n", namespace],
            f"get issuer '{namespace}/{name}'",
        )

    def create_issuer(self, namespace: str, issuer: dict[str, Any]) -> None:
        issuer = {**issuer, "metadata": {**issuer.get("metadata", {}), "namespace": namespace}}
        self._create(issuer, f"create issuer in '{namespace}'")

    def apply_manifest(self, manifest: bytes) -> None:
        result = self._run_kubectl(["apply", "-f", "-"], input_data=manifest.decode("utf-8"))
        self._check(result, "apply manifest")
        applied = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        logger.info(f"Applied manifest: {len(applied)} resource(s)")
