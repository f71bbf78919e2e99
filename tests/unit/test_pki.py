"""Unit tests for PKI bootstrap."""

import base64
import logging

from cryptography import x509

from steward.channels.pki import build_ca_secret, build_issuer, ca_secret_name, install_pki
from tests.mocks import FakeCluster


class TestInstallPKI:
    """Test install_pki."""

    def test_creates_secret_and_issuer(self, fake_cluster):
        """Test both objects are created on first call."""
        install_pki("test", fake_cluster, fake_cluster)

        assert ("kube-system", "test-ca") in fake_cluster.secrets
        assert ("kube-system", "test") in fake_cluster.issuers

        issuer = fake_cluster.issuers[("kube-system", "test")]
        assert issuer["spec"]["ca"]["secretName"] == "test-ca"

    def test_second_call_succeeds(self, fake_cluster):
        """Test a repeated bootstrap is a no-op."""
        install_pki("test", fake_cluster, fake_cluster)
        secret = fake_cluster.secrets[("kube-system", "test-ca")]

        install_pki("test", fake_cluster, fake_cluster)

        assert len(fake_cluster.secrets) == 1
        assert len(fake_cluster.issuers) == 1
        assert fake_cluster.secrets[("kube-system", "test-ca")] is secret
        assert fake_cluster.create_calls == 2

    def test_lost_create_race_succeeds(self, caplog):
        """Test creating objects another node just created counts as success."""
        cluster = FakeCluster(stale_reads=True)
        install_pki("test", cluster, cluster)
        secret = cluster.secrets[("kube-system", "test-ca")]

        with caplog.at_level(logging.INFO):
            install_pki("test", cluster, cluster)

        assert cluster.secrets[("kube-system", "test-ca")] is secret
        assert len(cluster.issuers) == 1
        assert "created concurrently" in caplog.text

    def test_custom_namespace(self):
        """Test objects go to the given namespace."""
        cluster = FakeCluster(namespaces={"addons": {}})

        install_pki("test", cluster, cluster, namespace="addons")

        assert list(cluster.secrets) == [("addons", "test-ca")]
        assert list(cluster.issuers) == [("addons", "test")]


class TestCAMaterial:
    """Test the generated CA."""

    def test_secret_holds_ca_certificate(self):
        """Test the secret carries a self-signed CA certificate and key."""
        secret = build_ca_secret("test", "kube-system")

        assert secret["type"] == "kubernetes.io/tls"
        assert secret["metadata"] == {"name": "test-ca", "namespace": "kube-system"}

        cert = x509.load_pem_x509_certificate(base64.b64decode(secret["data"]["tls.crt"]))
        basic_constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
        assert basic_constraints.value.ca
        assert cert.subject == cert.issuer
        assert b"PRIVATE KEY" in base64.b64decode(secret["data"]["tls.key"])

    def test_issuer(self):
        """Test the issuer references the CA secret."""
        issuer = build_issuer("test", "kube-system")

        assert issuer["apiVersion"] == "cert-manager.io/v1"
        assert issuer["kind"] == "Issuer"
        assert issuer["spec"] == {"ca": {"secretName": ca_secret_name("test")}}
