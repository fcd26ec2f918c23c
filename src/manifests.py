"""
Template loading - reads Secret templates from a directory of YAML files.

Each file may hold several documents separated by ``---`` lines. Whole-line
comments are stripped before splitting, documents of any other kind are
ignored, and any decode or validation failure aborts the load.
"""

import base64
import binascii
import logging
import os
import re
from typing import Any, Dict, List, Optional

import yaml

from models import Secret
from validation import find_duplicate_keys, validate_secret_document

logger = logging.getLogger(__name__)

SECRET_API_VERSION = "v1"
SECRET_KIND = "Secret"

_DOCUMENT_DELIMITER_RE = re.compile(r"^---[ \t]*$", re.MULTILINE)


class TemplateError(Exception):
    """Raised when the template directory or one of its documents is unusable."""


class DuplicateTemplateError(TemplateError):
    """Raised when two templates target the same namespace and name."""


def list_template_files(directory: str) -> List[str]:
    """
    List the regular files directly inside a directory.

    Args:
        directory: Template directory path

    Returns:
        File paths sorted by file name

    Raises:
        TemplateError: If the directory cannot be read
    """
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        raise TemplateError(f"Failed to read directory {directory}: {e}") from e

    return [entry.path for entry in entries if entry.is_file()]


def strip_comments(content: str) -> str:
    """Remove lines that are comments in their entirety."""
    lines = content.split("\n")
    return "\n".join(line for line in lines if not line.strip().startswith("#"))


def split_documents(content: str) -> List[str]:
    """Split content on document delimiters, dropping blank documents."""
    return [
        doc for doc in _DOCUMENT_DELIMITER_RE.split(content) if doc.strip()
    ]


def _decode_data(
    data: Optional[Dict[str, str]], string_data: Optional[Dict[str, str]], source: str
) -> Dict[str, bytes]:
    decoded: Dict[str, bytes] = {}
    for key, value in (data or {}).items():
        try:
            decoded[key] = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TemplateError(
                f"{source}: data.{key} is not valid base64: {e}"
            ) from e

    # stringData wins over data, as on the API server
    for key, value in (string_data or {}).items():
        decoded[key] = value.encode("utf-8")
    return decoded


def secret_from_document(document: Dict[str, Any], source: str) -> Secret:
    """
    Build a Secret template from a validated document.

    Args:
        document: Decoded Secret manifest
        source: Human-readable origin used in error messages

    Returns:
        The template, without identity markers

    Raises:
        TemplateError: If the document does not match the Secret schema
    """
    is_valid, error = validate_secret_document(document)
    if not is_valid:
        raise TemplateError(f"{source}: invalid Secret: {error}")

    metadata = document["metadata"]
    return Secret(
        namespace=metadata["namespace"],
        name=metadata["name"],
        labels=dict(metadata.get("labels") or {}),
        annotations=dict(metadata.get("annotations") or {}),
        data=_decode_data(document.get("data"), document.get("stringData"), source),
        type=document.get("type"),
    )


def parse_document(document: str, source: str) -> Optional[Secret]:
    """
    Decode a single YAML document.

    Args:
        document: Raw document text
        source: Human-readable origin used in error messages

    Returns:
        A Secret template, or None if the document is another kind

    Raises:
        TemplateError: If the document cannot be decoded
    """
    try:
        obj = yaml.safe_load(document)
    except yaml.YAMLError as e:
        raise TemplateError(f"{source}: failed to decode document: {e}") from e

    if not isinstance(obj, dict):
        raise TemplateError(
            f"{source}: expected a mapping, got {type(obj).__name__}"
        )

    kind = obj.get("kind")
    api_version = obj.get("apiVersion")
    if not kind or not api_version:
        raise TemplateError(f"{source}: document has no apiVersion or kind")
    if kind != SECRET_KIND or api_version != SECRET_API_VERSION:
        logger.debug(f"{source}: skipping {api_version}/{kind}")
        return None

    return secret_from_document(obj, source)


def parse_template_files(files: List[str]) -> List[Secret]:
    """
    Parse Secret templates from a list of files.

    Args:
        files: File paths, parsed in the given order

    Returns:
        Templates in file order, then document order within each file

    Raises:
        TemplateError: If a file cannot be read or a document cannot be decoded
    """
    logger.info(f"Parsing {len(files)} template files")
    secrets: List[Secret] = []
    for path in files:
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateError(f"Failed to read file {path}: {e}") from e

        documents = split_documents(strip_comments(content))
        for index, document in enumerate(documents):
            secret = parse_document(document, f"{path}[{index}]")
            if secret is None:
                continue
            logger.debug(f"Parsed secret {secret.display_name} from {path}")
            secrets.append(secret)
    return secrets


def load_templates(directory: str) -> List[Secret]:
    """
    Load and validate all Secret templates in a directory.

    Args:
        directory: Template directory path

    Returns:
        Parsed templates

    Raises:
        TemplateError: On any read, decode or validation failure
        DuplicateTemplateError: If two templates share a namespace and name
    """
    secrets = parse_template_files(list_template_files(directory))

    duplicates = find_duplicate_keys(secrets)
    if duplicates:
        names = ", ".join(f"{ns}/{name}" for ns, name in duplicates)
        raise DuplicateTemplateError(f"Secrets declared more than once: {names}")

    logger.info(f"Parsed {len(secrets)} secret templates from {directory}")
    return secrets
