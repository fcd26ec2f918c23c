"""
Main entry point for secret-sync.

Reads Secret templates from SECRETS_DIR (or the directory given as the only
argument), reconciles them with the live secrets in the cluster and applies
the result.
"""

import logging
import sys
from typing import List, Optional

import click
from tabulate import tabulate

from applier import RecreateError
from config import load_config
from controller import DiscoveryError, SecretSyncController
from gateway.base import GatewayError
from gateway.k8s import KubernetesSecretGateway
from manifests import TemplateError
from models import ApplyResult

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def format_results(results: List[ApplyResult]) -> str:
    """Render apply results as a table."""
    headers = ["Namespace", "Name", "Action", "Message"]
    rows = [
        [result.namespace, result.name, result.action.value, result.message]
        for result in results
    ]
    return tabulate(rows, headers=headers, tablefmt="simple")


@click.command()
@click.argument("secrets_dir", required=False)
def cli(secrets_dir: Optional[str]):
    """Reconcile Secret templates in SECRETS_DIR with the cluster."""
    try:
        cfg = load_config(secrets_dir)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logging.basicConfig(level=cfg.logging.level, format=LOG_FORMAT)

    try:
        gateway = KubernetesSecretGateway.from_config(cfg.kubernetes)
        controller = SecretSyncController(gateway, mode=cfg.sync.mode)
        results = controller.run(cfg.sync.secrets_dir)
    except (TemplateError, DiscoveryError, RecreateError, GatewayError) as e:
        logger.error(f"Secret sync failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if results:
        click.echo(format_results(results))
    else:
        click.echo("No secrets to sync")


if __name__ == "__main__":
    cli()
