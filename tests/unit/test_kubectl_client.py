"""Unit tests for the kubectl-backed cluster client."""

import json
import subprocess
from unittest.mock import Mock, patch

import pytest

from steward.cluster.kubectl import KubectlClient
from steward.utils.errors import AlreadyExistsError, KubectlCommandError

VERSION_OK = Mock(returncode=0, stdout="Client Version: v1.29.0", stderr="")


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> Mock:
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def mock_run():
    with patch("steward.cluster.kubectl.subprocess.run") as mock_run:
        mock_run.return_value = VERSION_OK
        yield mock_run


@pytest.fixture
def client(mock_run) -> KubectlClient:
    client = KubectlClient(kubeconfig_path="/tmp/kubeconfig", timeout=30)
    mock_run.reset_mock()
    return client


class TestKubectlClientInit:
    """Tests for KubectlClient initialization."""

    def test_init_success(self, mock_run):
        """Test successful initialization."""
        client = KubectlClient()

        assert client.kubeconfig_path is None
        mock_run.assert_called_once()
        args = mock_run.call_args[0][0]
        assert args == ["kubectl", "version", "--client"]

    def test_init_kubectl_not_found(self, mock_run):
        """Test initialization when kubectl is not installed."""
        mock_run.side_effect = FileNotFoundError()

        with pytest.raises(KubectlCommandError) as exc_info:
            KubectlClient()

        assert "kubectl CLI not found" in str(exc_info.value)
        assert "install kubectl" in str(exc_info.value)

    def test_init_kubectl_timeout(self, mock_run):
        """Test initialization timeout."""
        mock_run.side_effect = subprocess.TimeoutExpired("kubectl", 10)

        with pytest.raises(KubectlCommandError, match="timed out"):
            KubectlClient()

    def test_init_kubectl_broken(self, mock_run):
        """Test a failing version check."""
        mock_run.return_value = completed(returncode=1, stderr="boom")

        with pytest.raises(KubectlCommandError, match="not available"):
            KubectlClient()


class TestKubectlClientCommands:
    """Tests for kubectl command construction and result handling."""

    def test_kubeconfig_and_context_flags(self, mock_run):
        """Test kubeconfig and context are passed to every command."""
        client = KubectlClient(kubeconfig_path="/tmp/kubeconfig", context="prod")
        mock_run.return_value = completed(stdout=json.dumps({"items": []}))

        client.list_nodes()

        args = mock_run.call_args[0][0]
        assert args[:5] == ["kubectl", "--kubeconfig", "/tmp/kubeconfig", "--context", "prod"]
        assert args[5:] == ["get", "nodes", "-o", "json"]

    def test_timeout(self, client, mock_run):
        """Test a command timeout is a KubectlCommandError."""
        mock_run.side_effect = subprocess.TimeoutExpired("kubectl", 30)

        with pytest.raises(KubectlCommandError, match="timed out after 30 seconds"):
            client.list_nodes()

    def test_namespace_annotations(self, client, mock_run):
        """Test reading namespace annotations."""
        namespace = {
            "metadata": {
                "name": "kube-system",
                "annotations": {"addons.k8s.io/test": '{"version":"1.0.0"}'},
            }
        }
        mock_run.return_value = completed(stdout=json.dumps(namespace))

        annotations = client.get_namespace_annotations("kube-system")

        assert annotations == {"addons.k8s.io/test": '{"version":"1.0.0"}'}
        args = mock_run.call_args[0][0]
        assert args[-5:] == ["get", "namespace", "kube-system", "-o", "json"]

    def test_namespace_without_annotations(self, client, mock_run):
        """Test a namespace with no annotations reads as empty."""
        mock_run.return_value = completed(stdout=json.dumps({"metadata": {"name": "kube-system"}}))

        assert client.get_namespace_annotations("kube-system") == {}

    def test_namespace_missing(self, client, mock_run):
        """Test a missing namespace is an error."""
        mock_run.return_value = completed(
            returncode=1, stderr='Error from server (NotFound): namespaces "nope" not found'
        )

        with pytest.raises(KubectlCommandError, match="Namespace 'nope' not found"):
            client.get_namespace_annotations("nope")

    def test_set_namespace_annotation(self, client, mock_run):
        """Test annotations are written with --overwrite."""
        mock_run.return_value = completed(stdout="namespace/kube-system annotated")

        client.set_namespace_annotation("kube-system", "addons.k8s.io/test", '{"version":"1"}')

        args = mock_run.call_args[0][0]
        assert args[-5:] == [
            "annotate",
            "--overwrite",
            "namespace",
            "kube-system",
            'addons.k8s.io/test={"version":"1"}',
        ]

    def test_annotate_node_failure(self, client, mock_run):
        """Test a failed node annotation raises."""
        mock_run.return_value = completed(returncode=1, stderr="the object has been modified")

        with pytest.raises(KubectlCommandError, match="annotate node 'cp'"):
            client.annotate_node("cp", "kops.k8s.io/needs-update", "")

    def test_list_nodes(self, client, mock_run):
        """Test node listing returns items."""
        nodes = {"items": [{"metadata": {"name": "cp"}}, {"metadata": {"name": "node"}}]}
        mock_run.return_value = completed(stdout=json.dumps(nodes))

        assert [n["metadata"]["name"] for n in client.list_nodes()] == ["cp", "node"]

    def test_get_secret_not_found(self, client, mock_run):
        """Test a missing secret reads as None."""
        mock_run.return_value = completed(
            returncode=1, stderr='Error from server (NotFound): secrets "test-ca" not found'
        )

        assert client.get_secret("kube-system", "test-ca") is None

    def test_get_secret_other_error(self, client, mock_run):
        """Test other read failures raise."""
        mock_run.return_value = completed(returncode=1, stderr="connection refused")

        with pytest.raises(KubectlCommandError, match="connection refused"):
            client.get_secret("kube-system", "test-ca")

    def test_invalid_json(self, client, mock_run):
        """Test unparseable output raises."""
        mock_run.return_value = completed(stdout="not json")

        with pytest.raises(KubectlCommandError, match="parse kubectl output"):
            client.get_issuer("kube-system", "test")

    def test_create_secret(self, client, mock_run):
        """Test secrets are created from stdin with the namespace set."""
        mock_run.return_value = completed(stdout="secret/test-ca created")

        client.create_secret("kube-system", {"kind": "Secret", "metadata": {"name": "test-ca"}})

        args, kwargs = mock_run.call_args
        assert args[0][-3:] == ["create", "-f", "-"]
        created = json.loads(kwargs["input"])
        assert created["metadata"] == {"name": "test-ca", "namespace": "kube-system"}

    def test_create_already_exists(self, client, mock_run):
        """Test a create race is reported as AlreadyExistsError."""
        mock_run.return_value = completed(
            returncode=1,
            stderr=(
                "Error from server (AlreadyExists): "
                'issuers.cert-manager.io "test" already exists'
            ),
        )

        with pytest.raises(AlreadyExistsError):
            client.create_issuer("kube-system", {"kind": "Issuer", "metadata": {"name": "test"}})

    def test_get_issuer_uses_cert_manager_resource(self, client, mock_run):
        """Test issuers are read through the cert-manager resource."""
        mock_run.return_value = completed(stdout=json.dumps({"kind": "Issuer"}))

        assert client.get_issuer("kube-system", "test") == {"kind": "Issuer"}
        args = mock_run.call_args[0][0]
        assert "issuers.cert-manager.io" in args

    def test_apply_manifest(self, client, mock_run):
        """Test manifests are applied from stdin."""
        mock_run.return_value = completed(stdout="deployment.apps/dns-controller configured\n")

        client.apply_manifest(b"kind: Deployment\n")

        args, kwargs = mock_run.call_args
        assert args[0][-3:] == ["apply", "-f", "-"]
        assert kwargs["input"] == "kind: Deployment\n"
        assert kwargs["timeout"] == 30

    def test_apply_manifest_failure(self, client, mock_run):
        """Test apply errors raise with kubectl's message."""
        mock_run.return_value = completed(returncode=1, stderr="error validating data")

        with pytest.raises(KubectlCommandError, match="Failed to apply manifest: error validating"):
            client.apply_manifest(b"kind: Deployment\n")
