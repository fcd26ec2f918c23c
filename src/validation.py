"""
Schema Validation - JSON Schema validation of Secret documents.

Provides functions to validate decoded Secret manifests against the subset
of the v1 Secret schema this tool relies on, and to detect templates that
target the same secret twice.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jsonschema import Draft7Validator

from models import Secret

logger = logging.getLogger(__name__)

_STRING_MAP = {
    "type": ["object", "null"],
    "additionalProperties": {"type": "string"},
}

SECRET_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["apiVersion", "kind", "metadata"],
    "properties": {
        "apiVersion": {"const": "v1"},
        "kind": {"const": "Secret"},
        "metadata": {
            "type": "object",
            "required": ["name", "namespace"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "namespace": {"type": "string", "minLength": 1},
                "labels": _STRING_MAP,
                "annotations": _STRING_MAP,
            },
        },
        "type": {"type": "string"},
        "data": _STRING_MAP,
        "stringData": _STRING_MAP,
    },
}


def validate_secret_document(document: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate a decoded Secret document.

    Args:
        document: The decoded YAML mapping

    Returns:
        Tuple of (is_valid, error_message)
    """
    validator = Draft7Validator(SECRET_DOCUMENT_SCHEMA)
    errors = sorted(
        validator.iter_errors(document),
        key=lambda e: [str(p) for p in e.absolute_path],
    )

    if not errors:
        return True, None

    # Collect all validation errors
    error_messages = []
    for error in errors:
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        error_messages.append(f"{path}: {error.message}")

    return False, "; ".join(error_messages)


def find_duplicate_keys(secrets: Iterable[Secret]) -> List[Tuple[str, str]]:
    """
    Find (namespace, name) keys declared by more than one template.

    Args:
        secrets: Parsed templates

    Returns:
        Duplicated keys in the order their second occurrence was seen
    """
    seen = set()
    duplicates: List[Tuple[str, str]] = []
    for secret in secrets:
        if secret.key in seen and secret.key not in duplicates:
            duplicates.append(secret.key)
        seen.add(secret.key)
    return duplicates
