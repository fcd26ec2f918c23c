"""
Applier - pushes reconciled secrets to the cluster.

Each secret is driven through a small state machine that ends within the
run:

- Unidentified secrets are created.
- Identified secrets are updated in place.
- If create or update fails, the secret is recreated: existence check,
  delete, then create with identity markers cleared. This covers changes
  the API server rejects in place, such as a new Secret type. The secret
  is briefly absent while it is recreated.

A separate metadata-only mode patches labels and annotations, never sends
data, and treats a missing secret as nothing to do.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from gateway.base import GatewayError, SecretGateway, SecretNotFoundError
from models import ApplyAction, ApplyResult, Secret

logger = logging.getLogger(__name__)


class RecreateStage(Enum):
    """Step of the delete-and-recreate procedure."""

    EXISTENCE_CHECK = "existence_check"
    DELETE = "delete"
    CREATE = "create"


class RecreateError(Exception):
    """Raised when a secret could not be deleted and recreated."""

    def __init__(self, secret: Secret, stage: RecreateStage, message: str):
        super().__init__(
            f"Recreate of {secret.display_name} failed at {stage.value}: {message}"
        )
        self.secret = secret
        self.stage = stage

    @property
    def deleted(self) -> bool:
        """True when the live object was deleted but not recreated."""
        return self.stage == RecreateStage.CREATE


class Applier:
    """
    Applies reconciled secrets through a SecretGateway.

    Secrets are applied one at a time, in order. The first unrecoverable
    failure stops the run; secrets already applied are left as they are.
    """

    def __init__(self, gateway: SecretGateway):
        self.gateway = gateway

    def apply(self, secret: Secret) -> ApplyResult:
        """
        Create or update one secret, falling back to recreate.

        Args:
            secret: Reconciled secret

        Returns:
            ApplyResult describing what was done

        Raises:
            RecreateError: If the fallback recreate fails
        """
        if secret.is_identified:
            try:
                self.gateway.update_secret(secret.namespace, secret)
                logger.info(f"Updated secret {secret.display_name}")
                return ApplyResult(secret.namespace, secret.name, ApplyAction.UPDATED)
            except GatewayError as e:
                logger.warning(
                    f"Update of {secret.display_name} failed ({e}), recreating"
                )
                return self.recreate(secret, cause=e)

        try:
            self.gateway.create_secret(secret.namespace, secret)
            logger.info(f"Created secret {secret.display_name}")
            return ApplyResult(secret.namespace, secret.name, ApplyAction.CREATED)
        except GatewayError as e:
            logger.warning(f"Create of {secret.display_name} failed ({e}), recreating")
            return self.recreate(secret, cause=e)

    def recreate(
        self, secret: Secret, cause: Optional[Exception] = None
    ) -> ApplyResult:
        """
        Delete the live secret and create it again from ``secret``.

        Args:
            secret: Reconciled secret; its identity markers are discarded
            cause: The failure that triggered the recreate, for reporting

        Returns:
            ApplyResult with action RECREATED

        Raises:
            RecreateError: If the secret does not exist, or delete or create fails
        """
        fresh = secret.without_identity()

        try:
            self.gateway.get_secret(fresh.namespace, fresh.name)
        except SecretNotFoundError as e:
            message = "secret does not exist"
            if cause is not None:
                message = f"{message} (original failure: {cause})"
            raise RecreateError(fresh, RecreateStage.EXISTENCE_CHECK, message) from e
        except GatewayError as e:
            raise RecreateError(fresh, RecreateStage.EXISTENCE_CHECK, str(e)) from e

        try:
            self.gateway.delete_secret(fresh.namespace, fresh.name)
        except GatewayError as e:
            raise RecreateError(fresh, RecreateStage.DELETE, str(e)) from e
        logger.info(f"Deleted secret {fresh.display_name}")

        try:
            self.gateway.create_secret(fresh.namespace, fresh)
        except GatewayError as e:
            logger.error(
                f"Secret {fresh.display_name} was deleted but could not be "
                f"recreated: {e}"
            )
            raise RecreateError(fresh, RecreateStage.CREATE, str(e)) from e

        logger.info(f"Recreated secret {fresh.display_name}")
        return ApplyResult(
            fresh.namespace,
            fresh.name,
            ApplyAction.RECREATED,
            message=str(cause) if cause is not None else "",
        )

    def apply_all(self, secrets: Sequence[Secret]) -> List[ApplyResult]:
        """Apply secrets in order, stopping at the first failure."""
        logger.info(f"Applying {len(secrets)} secrets")
        return [self.apply(secret) for secret in secrets]

    def sync_metadata(self, secret: Secret) -> ApplyResult:
        """
        Patch only the labels and annotations of one secret.

        Args:
            secret: Reconciled secret

        Returns:
            ApplyResult with action PATCHED, or SKIPPED if the secret is gone

        Raises:
            GatewayError: On any failure other than the secret not existing
        """
        try:
            self.gateway.patch_metadata(
                secret.namespace,
                secret.name,
                dict(secret.labels),
                dict(secret.annotations),
            )
        except SecretNotFoundError:
            logger.info(f"Secret {secret.display_name} not found, nothing to patch")
            return ApplyResult(
                secret.namespace, secret.name, ApplyAction.SKIPPED, "not found"
            )

        logger.info(f"Patched metadata of secret {secret.display_name}")
        return ApplyResult(secret.namespace, secret.name, ApplyAction.PATCHED)

    def sync_all_metadata(self, secrets: Sequence[Secret]) -> List[ApplyResult]:
        """Patch metadata of secrets in order, stopping at the first failure."""
        logger.info(f"Patching metadata of {len(secrets)} secrets")
        return [self.sync_metadata(secret) for secret in secrets]
