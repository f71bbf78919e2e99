"""Cluster identity handed to manifest rewrites."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClusterContext:
    """What the manifest remapper needs to know about the cluster."""

    cluster_name: str = ""
    managed_by: str = "kops"
    use_service_account_iam: bool = False
    aws_account_id: str = ""
    aws_partition: str = "aws"
