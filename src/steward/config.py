"""Configuration management for Steward.

Configuration is loaded from environment variables and an optional .env file.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from steward.channels.versions import parse_version
from steward.manifests.context import ClusterContext
from steward.utils.errors import ConfigurationError, VersionParseError

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class StewardConfig:
    """Steward configuration.

    Explicit constructor arguments are defaults; environment variables win.
    """

    # Cluster
    system_namespace: str = "kube-system"
    cluster_name: str | None = None
    kubernetes_version: str | None = None
    kubeconfig: str | None = None
    kubectl_timeout: int = 60

    # Manifest remapping
    managed_by: str = "kops"
    use_service_account_iam: bool = False
    aws_account_id: str | None = None
    aws_partition: str = "aws"

    log_level: str = "info"

    def __post_init__(self):
        """Load configuration from environment variables after initialization."""
        load_dotenv()

        self.system_namespace = os.getenv("STEWARD_SYSTEM_NAMESPACE", self.system_namespace)
        self.cluster_name = os.getenv("STEWARD_CLUSTER_NAME", self.cluster_name)
        self.kubernetes_version = os.getenv(
            "STEWARD_KUBERNETES_VERSION", self.kubernetes_version
        )
        self.kubeconfig = os.getenv("KUBECONFIG", self.kubeconfig)

        timeout = os.getenv("STEWARD_KUBECTL_TIMEOUT")
        if timeout is not None:
            try:
                self.kubectl_timeout = int(timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"STEWARD_KUBECTL_TIMEOUT must be an integer, got {timeout!r}"
                ) from e

        self.managed_by = os.getenv("STEWARD_MANAGED_BY", self.managed_by)
        self.use_service_account_iam = _env_bool(
            "STEWARD_USE_SERVICE_ACCOUNT_IAM", self.use_service_account_iam
        )
        self.aws_account_id = os.getenv("AWS_ACCOUNT_ID", self.aws_account_id)
        self.aws_partition = os.getenv("AWS_PARTITION", self.aws_partition)

        self.log_level = os.getenv("LOG_LEVEL", self.log_level).lower()

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ConfigurationError: If the configuration is inconsistent
        """
        if not self.system_namespace:
            raise ConfigurationError("System namespace must not be empty")

        if self.kubectl_timeout <= 0:
            raise ConfigurationError(
                f"kubectl timeout must be positive, got {self.kubectl_timeout}"
            )

        if self.kubernetes_version:
            try:
                parse_version(self.kubernetes_version)
            except VersionParseError as e:
                raise ConfigurationError(
                    f"Invalid Kubernetes version {self.kubernetes_version!r}: {e}"
                ) from e

        if self.use_service_account_iam:
            if not self.cluster_name:
                raise ConfigurationError(
                    "Cluster name is required when service account IAM is enabled. "
                    "Set STEWARD_CLUSTER_NAME environment variable."
                )
            if not self.aws_account_id:
                raise ConfigurationError(
                    "AWS account id is required when service account IAM is enabled. "
                    "Set AWS_ACCOUNT_ID environment variable."
                )

    def cluster_context(self) -> ClusterContext:
        """Build the cluster identity used by the manifest remapper."""
        return ClusterContext(
            cluster_name=self.cluster_name or "",
            managed_by=self.managed_by,
            use_service_account_iam=self.use_service_account_iam,
            aws_account_id=self.aws_account_id or "",
            aws_partition=self.aws_partition,
        )
