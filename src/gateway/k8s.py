"""
Kubernetes secret gateway backed by the official ``kubernetes`` client.

Connection settings come from a kubeconfig file when one exists, otherwise
the in-cluster service account is used.
"""

import base64
import logging
from typing import Dict, List

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from config import KubernetesConfig
from gateway.base import GatewayError, SecretGateway, SecretNotFoundError
from models import Secret

logger = logging.getLogger(__name__)


def build_core_api(kube_config: KubernetesConfig) -> client.CoreV1Api:
    """
    Load cluster credentials and return a CoreV1Api client.

    Args:
        kube_config: Kubernetes connection configuration

    Raises:
        GatewayError: If no usable configuration could be loaded
    """
    try:
        if kube_config.in_cluster:
            logger.info("No kubeconfig found, using in-cluster configuration")
            k8s_config.load_incluster_config()
        else:
            logger.info(f"Loading kubeconfig from {kube_config.kubeconfig}")
            k8s_config.load_kube_config(
                config_file=kube_config.kubeconfig,
                context=kube_config.context,
            )
    except (k8s_config.ConfigException, HTTPError) as e:
        raise GatewayError(f"Failed to load cluster configuration: {e}") from e

    return client.CoreV1Api()


def secret_from_v1(obj: client.V1Secret) -> Secret:
    """Convert an API object into a live Secret."""
    meta = obj.metadata
    return Secret(
        namespace=meta.namespace,
        name=meta.name,
        labels=dict(meta.labels or {}),
        annotations=dict(meta.annotations or {}),
        data={k: base64.b64decode(v) for k, v in (obj.data or {}).items()},
        type=obj.type,
        uid=meta.uid,
        resource_version=meta.resource_version,
        creation_timestamp=meta.creation_timestamp,
    )


def secret_to_v1(secret: Secret) -> client.V1Secret:
    """Convert a Secret into an API object ready to submit."""
    data = {k: base64.b64encode(v).decode("ascii") for k, v in secret.data.items()}
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(
            name=secret.name,
            namespace=secret.namespace,
            labels=dict(secret.labels) or None,
            annotations=dict(secret.annotations) or None,
            uid=secret.uid,
            resource_version=secret.resource_version,
            creation_timestamp=secret.creation_timestamp,
        ),
        type=secret.type,
        data=data or None,
    )


class KubernetesSecretGateway(SecretGateway):
    """SecretGateway talking to a live cluster through CoreV1Api."""

    def __init__(self, api: client.CoreV1Api):
        self.api = api

    @classmethod
    def from_config(cls, kube_config: KubernetesConfig) -> "KubernetesSecretGateway":
        return cls(build_core_api(kube_config))

    def _error(self, e: Exception, action: str, namespace: str, name: str = ""):
        target = f"{namespace}/{name}" if name else namespace
        if not isinstance(e, ApiException):
            # Transport failure, the request never got a response
            return GatewayError(f"Failed to {action} {target}: {e}")
        if e.status == 404 and name:
            return SecretNotFoundError(namespace, name)
        return GatewayError(
            f"Failed to {action} {target}: {e.status} {e.reason}", status=e.status
        )

    def list_secrets(self, namespace: str) -> List[Secret]:
        try:
            result = self.api.list_namespaced_secret(namespace=namespace)
        except (ApiException, HTTPError) as e:
            raise self._error(e, "list secrets in", namespace) from e
        return [secret_from_v1(item) for item in result.items]

    def get_secret(self, namespace: str, name: str) -> Secret:
        try:
            obj = self.api.read_namespaced_secret(name=name, namespace=namespace)
        except (ApiException, HTTPError) as e:
            raise self._error(e, "get secret", namespace, name) from e
        return secret_from_v1(obj)

    def create_secret(self, namespace: str, secret: Secret) -> Secret:
        try:
            obj = self.api.create_namespaced_secret(
                namespace=namespace, body=secret_to_v1(secret)
            )
        except (ApiException, HTTPError) as e:
            raise self._error(e, "create secret", namespace, secret.name) from e
        return secret_from_v1(obj)

    def update_secret(self, namespace: str, secret: Secret) -> Secret:
        try:
            obj = self.api.replace_namespaced_secret(
                name=secret.name, namespace=namespace, body=secret_to_v1(secret)
            )
        except (ApiException, HTTPError) as e:
            raise self._error(e, "update secret", namespace, secret.name) from e
        return secret_from_v1(obj)

    def delete_secret(self, namespace: str, name: str) -> None:
        try:
            self.api.delete_namespaced_secret(name=name, namespace=namespace)
        except (ApiException, HTTPError) as e:
            raise self._error(e, "delete secret", namespace, name) from e

    def patch_metadata(
        self,
        namespace: str,
        name: str,
        labels: Dict[str, str],
        annotations: Dict[str, str],
    ) -> None:
        body = {"metadata": {"labels": labels, "annotations": annotations}}
        try:
            self.api.patch_namespaced_secret(name=name, namespace=namespace, body=body)
        except (ApiException, HTTPError) as e:
            raise self._error(e, "patch secret", namespace, name) from e
