"""
Secret Sync Controller - one reconciliation pass.

Similar to a Kubernetes controller's reconcile step, but run once per
invocation: load templates, snapshot the live secrets in every referenced
namespace, merge, then push the result. Any unrecoverable error stops the
pass.
"""

import logging
from typing import List, Optional, Sequence

from applier import Applier
from gateway.base import GatewayError, SecretGateway
from manifests import load_templates
from models import ApplyResult, Secret, SyncMode
from reconciler import reconcile_secrets, secret_namespaces

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when the live secrets of a namespace cannot be listed."""

    def __init__(self, namespace: str, message: str):
        super().__init__(f"Failed to list secrets in namespace {namespace}: {message}")
        self.namespace = namespace


class SecretSyncController:
    """
    Reconciles Secret templates with the cluster.

    The gateway is supplied by the caller; nothing here creates a client.
    """

    def __init__(
        self,
        gateway: SecretGateway,
        mode: SyncMode = SyncMode.APPLY,
        applier: Optional[Applier] = None,
    ):
        self.gateway = gateway
        self.mode = mode
        self.applier = applier or Applier(gateway)

    def discover(self, namespaces: Sequence[str]) -> List[Secret]:
        """
        Snapshot live secrets, one list call per namespace.

        Args:
            namespaces: Namespaces to list, in order

        Returns:
            Live secrets from all namespaces

        Raises:
            DiscoveryError: If any list call fails
        """
        live_secrets: List[Secret] = []
        for namespace in namespaces:
            logger.info(f"Listing existing secrets in namespace {namespace}")
            try:
                found = self.gateway.list_secrets(namespace)
            except GatewayError as e:
                raise DiscoveryError(namespace, str(e)) from e
            logger.info(f"Found {len(found)} secrets in namespace {namespace}")
            live_secrets.extend(found)
        logger.info(f"Found {len(live_secrets)} existing secrets in total")
        return live_secrets

    def sync(self, templates: Sequence[Secret]) -> List[ApplyResult]:
        """
        Reconcile parsed templates and push them to the cluster.

        Args:
            templates: Parsed templates

        Returns:
            One ApplyResult per template, in template order
        """
        namespaces = secret_namespaces(templates)
        live_secrets = self.discover(namespaces)
        reconciled = reconcile_secrets(templates, live_secrets)

        if self.mode == SyncMode.METADATA:
            return self.applier.sync_all_metadata(reconciled)
        return self.applier.apply_all(reconciled)

    def run(self, secrets_dir: str) -> List[ApplyResult]:
        """Load templates from ``secrets_dir`` and sync them."""
        logger.info(f"Starting secret sync from {secrets_dir} ({self.mode.value} mode)")
        templates = load_templates(secrets_dir)
        results = self.sync(templates)
        logger.info(f"Secret sync finished: {len(results)} secrets processed")
        return results
