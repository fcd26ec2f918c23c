"""Pytest configuration and fixtures."""

from typing import Dict, List, Optional, Set, Tuple

import pytest

import config
from gateway.base import GatewayError, SecretGateway, SecretNotFoundError
from models import Secret


class FakeGateway(SecretGateway):
    """In-memory SecretGateway that records every call."""

    def __init__(self, secrets: Optional[List[Secret]] = None):
        self.store: Dict[Tuple[str, str], Secret] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.fail_on: Set[str] = set()
        self.fail_list_namespaces: Set[str] = set()
        self._uid_counter = 0
        for secret in secrets or []:
            self.store[secret.key] = secret

    def _fail(self, operation: str):
        if operation in self.fail_on:
            raise GatewayError(f"{operation} rejected", status=422)

    def list_secrets(self, namespace):
        self.calls.append(("list", namespace, ""))
        if namespace in self.fail_list_namespaces:
            raise GatewayError(f"forbidden: {namespace}", status=403)
        return [s for (ns, _), s in self.store.items() if ns == namespace]

    def get_secret(self, namespace, name):
        self.calls.append(("get", namespace, name))
        self._fail("get")
        if (namespace, name) not in self.store:
            raise SecretNotFoundError(namespace, name)
        return self.store[(namespace, name)]

    def create_secret(self, namespace, secret):
        self.calls.append(("create", namespace, secret.name))
        self._fail("create")
        if (namespace, secret.name) in self.store:
            raise GatewayError("already exists", status=409)
        self._uid_counter += 1
        stored = secret.without_identity()
        stored.uid = f"uid-{self._uid_counter}"
        stored.resource_version = "1"
        self.store[stored.key] = stored
        return stored

    def update_secret(self, namespace, secret):
        self.calls.append(("update", namespace, secret.name))
        self._fail("update")
        if (namespace, secret.name) not in self.store:
            raise SecretNotFoundError(namespace, secret.name)
        self.store[secret.key] = secret
        return secret

    def delete_secret(self, namespace, name):
        self.calls.append(("delete", namespace, name))
        self._fail("delete")
        if (namespace, name) not in self.store:
            raise SecretNotFoundError(namespace, name)
        del self.store[(namespace, name)]

    def patch_metadata(self, namespace, name, labels, annotations):
        self.calls.append(("patch", namespace, name))
        self._fail("patch")
        if (namespace, name) not in self.store:
            raise SecretNotFoundError(namespace, name)
        current = self.store[(namespace, name)]
        current.labels.update(labels)
        current.annotations.update(annotations)

    @property
    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def reset_global_config():
    """Reset the configuration singleton around each test."""
    config.reset_config()
    yield
    config.reset_config()


@pytest.fixture
def fake_gateway():
    """Create an empty in-memory gateway."""
    return FakeGateway()


@pytest.fixture
def live_secret():
    """A live secret holding controller-written data."""
    return Secret(
        namespace="a",
        name="s1",
        labels={"x": "0", "y": "2"},
        annotations={"owner": "controller"},
        data={"k": b"v"},
        type="Opaque",
        uid="u1",
        resource_version="42",
    )


@pytest.fixture
def template_dir(tmp_path):
    """Return a helper that writes template files into a temp directory."""

    def write(files: Dict[str, str]):
        for name, content in files.items():
            (tmp_path / name).write_text(content)
        return str(tmp_path)

    return write
