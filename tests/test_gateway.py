"""Unit tests for gateway/k8s.py - Kubernetes secret gateway."""

import base64
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError, ProtocolError

from config import KubernetesConfig
from gateway.base import GatewayError, SecretNotFoundError
from gateway.k8s import (
    KubernetesSecretGateway,
    build_core_api,
    secret_from_v1,
    secret_to_v1,
)
from models import Secret

CREATED_AT = datetime(2024, 5, 1, tzinfo=timezone.utc)


def make_v1_secret(namespace="a", name="s1", data=None, uid="u1"):
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels={"x": "0"},
            annotations={"owner": "controller"},
            uid=uid,
            resource_version="42",
            creation_timestamp=CREATED_AT,
        ),
        type="Opaque",
        data=data,
    )


@pytest.fixture
def mock_api():
    return MagicMock()


@pytest.fixture
def gateway(mock_api):
    return KubernetesSecretGateway(mock_api)


class TestConversion:
    """Tests for V1Secret conversion."""

    def test_secret_from_v1(self):
        obj = make_v1_secret(data={"k": base64.b64encode(b"v").decode()})
        secret = secret_from_v1(obj)
        assert secret.key == ("a", "s1")
        assert secret.labels == {"x": "0"}
        assert secret.annotations == {"owner": "controller"}
        assert secret.data == {"k": b"v"}
        assert secret.type == "Opaque"
        assert secret.uid == "u1"
        assert secret.resource_version == "42"
        assert secret.creation_timestamp == CREATED_AT

    def test_secret_from_v1_without_maps(self):
        obj = make_v1_secret()
        obj.metadata.labels = None
        obj.metadata.annotations = None
        secret = secret_from_v1(obj)
        assert secret.labels == {}
        assert secret.annotations == {}
        assert secret.data == {}

    def test_secret_to_v1(self):
        secret = Secret(
            "a",
            "s1",
            labels={"x": "1"},
            data={"k": b"v"},
            type="Opaque",
            uid="u1",
            resource_version="42",
        )
        obj = secret_to_v1(secret)
        assert obj.kind == "Secret"
        assert obj.metadata.namespace == "a"
        assert obj.metadata.name == "s1"
        assert obj.metadata.labels == {"x": "1"}
        assert obj.metadata.annotations is None
        assert obj.metadata.uid == "u1"
        assert obj.metadata.resource_version == "42"
        assert obj.data == {"k": base64.b64encode(b"v").decode()}

    def test_secret_to_v1_without_identity(self):
        obj = secret_to_v1(Secret("b", "s2"))
        assert obj.metadata.uid is None
        assert obj.metadata.resource_version is None
        assert obj.data is None


class TestKubernetesSecretGateway:
    """Tests for KubernetesSecretGateway calls."""

    def test_list_secrets(self, gateway, mock_api):
        mock_api.list_namespaced_secret.return_value = client.V1SecretList(
            items=[make_v1_secret(name="s1"), make_v1_secret(name="s2", uid="u2")]
        )
        secrets = gateway.list_secrets("a")
        mock_api.list_namespaced_secret.assert_called_once_with(namespace="a")
        assert [s.name for s in secrets] == ["s1", "s2"]

    def test_list_error(self, gateway, mock_api):
        mock_api.list_namespaced_secret.side_effect = ApiException(
            status=403, reason="Forbidden"
        )
        with pytest.raises(GatewayError) as exc_info:
            gateway.list_secrets("a")
        assert exc_info.value.status == 403
        assert not isinstance(exc_info.value, SecretNotFoundError)

    def test_get_secret(self, gateway, mock_api):
        mock_api.read_namespaced_secret.return_value = make_v1_secret()
        secret = gateway.get_secret("a", "s1")
        mock_api.read_namespaced_secret.assert_called_once_with(
            name="s1", namespace="a"
        )
        assert secret.uid == "u1"

    def test_get_missing_secret(self, gateway, mock_api):
        mock_api.read_namespaced_secret.side_effect = ApiException(
            status=404, reason="Not Found"
        )
        with pytest.raises(SecretNotFoundError) as exc_info:
            gateway.get_secret("a", "s1")
        assert exc_info.value.status == 404
        assert exc_info.value.name == "s1"

    def test_create_secret(self, gateway, mock_api):
        mock_api.create_namespaced_secret.return_value = make_v1_secret(name="s2")
        created = gateway.create_secret("a", Secret("a", "s2"))
        _, kwargs = mock_api.create_namespaced_secret.call_args
        assert kwargs["namespace"] == "a"
        assert kwargs["body"].metadata.name == "s2"
        assert created.uid == "u1"

    def test_create_conflict(self, gateway, mock_api):
        mock_api.create_namespaced_secret.side_effect = ApiException(
            status=409, reason="AlreadyExists"
        )
        with pytest.raises(GatewayError, match="409 AlreadyExists"):
            gateway.create_secret("a", Secret("a", "s1"))

    def test_update_secret(self, gateway, mock_api):
        mock_api.replace_namespaced_secret.return_value = make_v1_secret()
        gateway.update_secret("a", Secret("a", "s1", uid="u1", resource_version="42"))
        _, kwargs = mock_api.replace_namespaced_secret.call_args
        assert kwargs["name"] == "s1"
        assert kwargs["namespace"] == "a"
        assert kwargs["body"].metadata.resource_version == "42"

    def test_update_rejected(self, gateway, mock_api):
        mock_api.replace_namespaced_secret.side_effect = ApiException(
            status=422, reason="Unprocessable Entity"
        )
        with pytest.raises(GatewayError) as exc_info:
            gateway.update_secret("a", Secret("a", "s1", uid="u1"))
        assert exc_info.value.status == 422

    def test_delete_secret(self, gateway, mock_api):
        gateway.delete_secret("a", "s1")
        mock_api.delete_namespaced_secret.assert_called_once_with(
            name="s1", namespace="a"
        )

    def test_patch_metadata(self, gateway, mock_api):
        gateway.patch_metadata("a", "s1", {"x": "1"}, {"n": "v"})
        mock_api.patch_namespaced_secret.assert_called_once_with(
            name="s1",
            namespace="a",
            body={"metadata": {"labels": {"x": "1"}, "annotations": {"n": "v"}}},
        )

    def test_patch_missing_secret(self, gateway, mock_api):
        mock_api.patch_namespaced_secret.side_effect = ApiException(
            status=404, reason="Not Found"
        )
        with pytest.raises(SecretNotFoundError):
            gateway.patch_metadata("a", "s1", {}, {})

    def test_list_connection_failure(self, gateway, mock_api):
        mock_api.list_namespaced_secret.side_effect = MaxRetryError(
            None, "/api/v1/namespaces/a/secrets", "connection refused"
        )
        with pytest.raises(GatewayError) as exc_info:
            gateway.list_secrets("a")
        assert "Failed to list secrets in a" in str(exc_info.value)
        assert exc_info.value.status is None
        assert isinstance(exc_info.value.__cause__, MaxRetryError)

    def test_update_connection_failure(self, gateway, mock_api):
        mock_api.replace_namespaced_secret.side_effect = ProtocolError(
            "Connection aborted."
        )
        with pytest.raises(GatewayError, match="Failed to update secret a/s1"):
            gateway.update_secret("a", Secret("a", "s1", uid="u1"))

    def test_get_connection_failure_is_not_not_found(self, gateway, mock_api):
        mock_api.read_namespaced_secret.side_effect = MaxRetryError(
            None, "/api/v1", "refused"
        )
        with pytest.raises(GatewayError) as exc_info:
            gateway.get_secret("a", "s1")
        assert not isinstance(exc_info.value, SecretNotFoundError)

    def test_patch_connection_failure(self, gateway, mock_api):
        mock_api.patch_namespaced_secret.side_effect = MaxRetryError(
            None, "/api/v1", "refused"
        )
        with pytest.raises(GatewayError, match="Failed to patch secret a/s1"):
            gateway.patch_metadata("a", "s1", {}, {})


class TestBuildCoreApi:
    """Tests for build_core_api function."""

    @patch("gateway.k8s.k8s_config")
    def test_loads_kubeconfig_file(self, mock_config, tmp_path):
        kubeconfig = tmp_path / "config"
        kubeconfig.write_text("")
        cfg = KubernetesConfig(kubeconfig=str(kubeconfig), context="staging")
        api = build_core_api(cfg)
        mock_config.load_kube_config.assert_called_once_with(
            config_file=str(kubeconfig), context="staging"
        )
        mock_config.load_incluster_config.assert_not_called()
        assert isinstance(api, client.CoreV1Api)

    @patch("gateway.k8s.k8s_config")
    def test_falls_back_to_in_cluster(self, mock_config, tmp_path):
        cfg = KubernetesConfig(kubeconfig=str(tmp_path / "missing"))
        build_core_api(cfg)
        mock_config.load_incluster_config.assert_called_once_with()
        mock_config.load_kube_config.assert_not_called()

    @patch("gateway.k8s.k8s_config.load_incluster_config")
    def test_config_error_raises_gateway_error(self, mock_load, tmp_path):
        from kubernetes.config import ConfigException

        mock_load.side_effect = ConfigException("Service host/port is not set.")
        cfg = KubernetesConfig(kubeconfig=str(tmp_path / "missing"))
        with pytest.raises(GatewayError, match="Failed to load cluster configuration"):
            build_core_api(cfg)

    @patch("gateway.k8s.k8s_config.load_kube_config")
    def test_token_refresh_failure_raises_gateway_error(self, mock_load, tmp_path):
        kubeconfig = tmp_path / "config"
        kubeconfig.write_text("")
        mock_load.side_effect = MaxRetryError(None, "/token", "refused")
        cfg = KubernetesConfig(kubeconfig=str(kubeconfig))
        with pytest.raises(GatewayError, match="Failed to load cluster configuration"):
            build_core_api(cfg)
