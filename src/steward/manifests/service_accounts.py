"""Least-privilege credential bindings for well-known add-on service accounts.

A pod running as one of the known service accounts gets a projected
service-account token and the environment the AWS SDK needs to assume a
role dedicated to that account (IAM roles for service accounts).
"""

import logging
from dataclasses import dataclass
from typing import Any

from steward.manifests.context import ClusterContext
from steward.utils.errors import CredentialInjectionError

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = "amazonaws.com"
TOKEN_VOLUME_NAME = "token-amazonaws-com"
TOKEN_DIR = "/var/run/secrets/amazonaws.com/"
TOKEN_FILE = "token"
TOKEN_EXPIRATION_SECONDS = 86400
DEFAULT_FS_GROUP = 10001
MAX_ROLE_NAME_LENGTH = 64


@dataclass(frozen=True)
class ServiceAccountSubject:
    """A service account that is granted its own IAM role."""

    namespace: str
    name: str

    def role_name(self, cluster_name: str) -> str:
        return f"{self.namespace}.{self.name}.sa.{cluster_name}"[:MAX_ROLE_NAME_LENGTH]

    def role_arn(self, context: ClusterContext) -> str:
        return (
            f"arn:{context.aws_partition}:iam::{context.aws_account_id}:role/"
            f"{self.role_name(context.cluster_name)}"
        )


WELL_KNOWN_SERVICE_ACCOUNTS: dict[str, ServiceAccountSubject] = {
    "aws-load-balancer-controller": ServiceAccountSubject(
        "kube-system", "aws-load-balancer-controller"
    ),
}

DNS_CONTROLLER_SUBJECT = ServiceAccountSubject("kube-system", "dns-controller")


def get_wellknown_service_account(name: str | None) -> ServiceAccountSubject | None:
    if not name:
        return None
    return WELL_KNOWN_SERVICE_ACCOUNTS.get(name)


def _list_field(owner: dict[str, Any], key: str, what: str) -> list[Any]:
    value = owner.get(key)
    if value is None:
        value = []
        owner[key] = value
    if not isinstance(value, list):
        raise CredentialInjectionError(f"{what} must be a list, got {type(value).__name__}")
    return value


def set_env(container: dict[str, Any], name: str, value: str) -> None:
    env = _list_field(container, "env", "container env")
    for entry in env:
        if isinstance(entry, dict) and entry.get("name") == name:
            entry.pop("valueFrom", None)
            entry["value"] = value
            return
    env.append({"name": name, "value": value})


def add_service_account_role(
    context: ClusterContext, pod_spec: dict[str, Any], subject: ServiceAccountSubject
) -> None:
    """Attach the credential binding for ``subject`` to every container of ``pod_spec``.

    Applying the binding twice leaves the pod spec unchanged.

    Raises:
        CredentialInjectionError: If the pod spec is malformed
    """
    if not isinstance(pod_spec, dict):
        raise CredentialInjectionError(f"pod spec must be a mapping, got {type(pod_spec).__name__}")

    containers = _list_field(pod_spec, "containers", "pod spec containers")
    role_arn = subject.role_arn(context)

    volumes = _list_field(pod_spec, "volumes", "pod spec volumes")
    if not any(isinstance(v, dict) and v.get("name") == TOKEN_VOLUME_NAME for v in volumes):
        volumes.append(
            {
                "name": TOKEN_VOLUME_NAME,
                "projected": {
                    "defaultMode": 0o644,
                    "sources": [
                        {
                            "serviceAccountToken": {
                                "audience": TOKEN_AUDIENCE,
                                "expirationSeconds": TOKEN_EXPIRATION_SECONDS,
                                "path": TOKEN_FILE,
                            }
                        }
                    ],
                },
            }
        )

    for container in containers:
        if not isinstance(container, dict):
            raise CredentialInjectionError(
                f"container must be a mapping, got {type(container).__name__}"
            )
        mounts = _list_field(container, "volumeMounts", "container volumeMounts")
        if not any(isinstance(m, dict) and m.get("name") == TOKEN_VOLUME_NAME for m in mounts):
            mounts.append({"mountPath": TOKEN_DIR, "name": TOKEN_VOLUME_NAME, "readOnly": True})
        set_env(container, "AWS_ROLE_ARN", role_arn)
        set_env(container, "AWS_WEB_IDENTITY_TOKEN_FILE", TOKEN_DIR + TOKEN_FILE)

    # The token file is only readable with an fsGroup set
    security_context = pod_spec.get("securityContext")
    if security_context is None:
        security_context = {}
        pod_spec["securityContext"] = security_context
    if not isinstance(security_context, dict):
        raise CredentialInjectionError("pod spec securityContext must be a mapping")
    security_context.setdefault("fsGroup", DEFAULT_FS_GROUP)

    logger.debug(f"Bound {len(containers)} container(s) to role {role_arn}")
