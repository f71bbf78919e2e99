"""One-time PKI bootstrap for add-ons that need a certificate authority.

Several control-plane nodes may run this at the same time. There is no
lock: each object is created only if absent, and losing the create race
(``AlreadyExistsError``) counts as success.
"""

import base64
import datetime
import logging
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from steward.cluster.accessors import IssuerAccessor, SecretAccessor
from steward.utils.errors import AlreadyExistsError

logger = logging.getLogger(__name__)

CA_KEY_SIZE = 2048
CA_VALIDITY_DAYS = 3650


def ca_secret_name(addon_name: str) -> str:
    return f"{addon_name}-ca"


def _generate_ca(common_name: str) -> tuple[bytes, bytes]:
    """Generate a self-signed CA certificate and key, PEM encoded."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=CA_KEY_SIZE)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)

    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(hours=1))
        .not_valid_after(now + datetime.timedelta(days=CA_VALIDITY_DAYS))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(key, hashes.SHA256())
    )

    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )
    return cert_pem, key_pem


def build_ca_secret(addon_name: str, namespace: str) -> dict[str, Any]:
    cert_pem, key_pem = _generate_ca(addon_name)
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "kubernetes.io/tls",
        "metadata": {"name": ca_secret_name(addon_name), "namespace": namespace},
        "data": {
            "tls.crt": base64.b64encode(cert_pem).decode("ascii"),
            "tls.key": base64.b64encode(key_pem).decode("ascii"),
        },
    }


def build_issuer(addon_name: str, namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": "cert-manager.io/v1",
        "kind": "Issuer",
        "metadata": {"name": addon_name, "namespace": namespace},
        "spec": {"ca": {"secretName": ca_secret_name(addon_name)}},
    }


def install_pki(
    addon_name: str,
    secret_accessor: SecretAccessor,
    issuer_accessor: IssuerAccessor,
    namespace: str = "kube-system",
) -> None:
    """Ensure the add-on's CA secret and issuer exist.

    Args:
        addon_name: Add-on name; the secret is ``<addon>-ca`` and the issuer ``<addon>``
        secret_accessor: Secret accessor
        issuer_accessor: cert-manager issuer accessor
        namespace: System namespace
    """
    secret_name = ca_secret_name(addon_name)

    if secret_accessor.get_secret(namespace, secret_name) is None:
        logger.info(f"[{addon_name}] creating CA secret {namespace}/{secret_name}")
        try:
            secret_accessor.create_secret(namespace, build_ca_secret(addon_name, namespace))
        except AlreadyExistsError:
            logger.info(f"[{addon_name}] CA secret {secret_name} created concurrently, using it")

    if issuer_accessor.get_issuer(namespace, addon_name) is None:
        logger.info(f"[{addon_name}] creating issuer {namespace}/{addon_name}")
        try:
            issuer_accessor.create_issuer(namespace, build_issuer(addon_name, namespace))
        except AlreadyExistsError:
            logger.info(f"[{addon_name}] issuer {addon_name} created concurrently, using it")
