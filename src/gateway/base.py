"""
Secret Gateway Base - Abstract interface to the secret store.

Implementations perform synchronous, blocking calls against a single
cluster. Every failure is reported as a ``GatewayError``; a missing object
is reported as the ``SecretNotFoundError`` subclass so callers can tell
absence apart from other failures.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from models import Secret


class GatewayError(Exception):
    """Raised when a secret store call fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SecretNotFoundError(GatewayError):
    """Raised when the requested secret does not exist."""

    def __init__(self, namespace: str, name: str):
        super().__init__(f"Secret {namespace}/{name} not found", status=404)
        self.namespace = namespace
        self.name = name


class SecretGateway(ABC):
    """Abstract base class for secret stores."""

    @abstractmethod
    def list_secrets(self, namespace: str) -> List[Secret]:
        """
        List all secrets in a namespace.

        Args:
            namespace: Namespace to list

        Returns:
            Live secrets, with identity markers set
        """
        pass

    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> Secret:
        """
        Fetch a single secret.

        Raises:
            SecretNotFoundError: If the secret does not exist
        """
        pass

    @abstractmethod
    def create_secret(self, namespace: str, secret: Secret) -> Secret:
        """Create a secret and return the stored object."""
        pass

    @abstractmethod
    def update_secret(self, namespace: str, secret: Secret) -> Secret:
        """Replace an existing secret and return the stored object."""
        pass

    @abstractmethod
    def delete_secret(self, namespace: str, name: str) -> None:
        """Delete a secret."""
        pass

    @abstractmethod
    def patch_metadata(
        self,
        namespace: str,
        name: str,
        labels: Dict[str, str],
        annotations: Dict[str, str],
    ) -> None:
        """
        Merge labels and annotations into an existing secret.

        The secret's data is never sent.

        Raises:
            SecretNotFoundError: If the secret does not exist
        """
        pass
