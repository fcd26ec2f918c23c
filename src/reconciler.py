"""
Reconciler - merges Secret templates with their live counterparts.

Templates declare the desired labels and annotations; live secrets own the
payload. When a template matches a live secret, template metadata wins on
key collisions and the live data is always kept. Unmatched templates pass
through unchanged and are created.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from models import Secret

logger = logging.getLogger(__name__)


def secret_namespaces(secrets: Iterable[Secret]) -> List[str]:
    """Return the distinct namespaces of ``secrets`` in first-seen order."""
    namespaces: List[str] = []
    for secret in secrets:
        if secret.namespace not in namespaces:
            namespaces.append(secret.namespace)
    return namespaces


def merge_metadata(
    live: Optional[Dict[str, str]], template: Optional[Dict[str, str]]
) -> Dict[str, str]:
    """
    Merge two label or annotation maps into a new dict.

    Args:
        live: Values currently on the cluster object
        template: Values declared by the template, preferred on collision

    Returns:
        A new mapping; neither input is modified
    """
    merged = dict(live or {})
    merged.update(template or {})
    return merged


def find_live_secret(
    template: Secret, live_secrets: Sequence[Secret]
) -> Optional[Secret]:
    """Return the first live secret with the template's namespace and name."""
    for live in live_secrets:
        if live.key == template.key:
            return live
    return None


def reconcile_secret(template: Secret, live: Optional[Secret]) -> Secret:
    """
    Build the object to submit for one template.

    Args:
        template: Parsed template
        live: Matching live secret, if any

    Returns:
        A new Secret. Without a match it equals the template and carries no
        identity markers. With a match it carries the merged metadata, the
        live data and the live identity markers.
    """
    if live is None:
        return replace(
            template,
            labels=dict(template.labels),
            annotations=dict(template.annotations),
            data=dict(template.data),
        )

    return Secret(
        namespace=template.namespace,
        name=template.name,
        labels=merge_metadata(live.labels, template.labels),
        annotations=merge_metadata(live.annotations, template.annotations),
        data=dict(live.data),
        type=template.type or live.type,
        uid=live.uid,
        resource_version=live.resource_version,
        creation_timestamp=live.creation_timestamp,
    )


def reconcile_secrets(
    templates: Sequence[Secret], live_secrets: Sequence[Secret]
) -> List[Secret]:
    """
    Reconcile every template against the live snapshot.

    Args:
        templates: Parsed templates
        live_secrets: Live secrets from all indexed namespaces

    Returns:
        One reconciled secret per template, in template order
    """
    logger.info(
        f"Reconciling {len(templates)} templates against "
        f"{len(live_secrets)} live secrets"
    )
    reconciled = []
    for template in templates:
        live = find_live_secret(template, live_secrets)
        if live is None:
            logger.info(f"Secret {template.display_name} not found, will create")
        else:
            logger.info(
                f"Secret {template.display_name} exists (uid {live.uid}), "
                "merging metadata"
            )
        reconciled.append(reconcile_secret(template, live))
    return reconciled
