"""
Core secret types and dataclasses.

A single ``Secret`` dataclass represents a template parsed from disk, a live
object returned by the cluster, and the reconciled object submitted back.
Live and reconciled secrets carry identity markers (uid, resource version);
templates do not.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple


class SyncMode(Enum):
    """How reconciled secrets are pushed to the cluster."""

    APPLY = "apply"
    METADATA = "metadata"


class ApplyAction(Enum):
    """Terminal outcome of a single secret in a run."""

    CREATED = "created"
    UPDATED = "updated"
    RECREATED = "recreated"
    PATCHED = "patched"
    SKIPPED = "skipped"


@dataclass
class Secret:
    """A Kubernetes v1 Secret reduced to the fields this tool manages."""

    namespace: str
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, bytes] = field(default_factory=dict)
    type: Optional[str] = None

    # Identity markers, only set on objects that exist in the cluster
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    creation_timestamp: Optional[datetime] = None

    @property
    def key(self) -> Tuple[str, str]:
        """Matching key between templates and live secrets."""
        return (self.namespace, self.name)

    @property
    def display_name(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def is_identified(self) -> bool:
        """True when the secret carries a cluster-assigned uid."""
        return bool(self.uid)

    def without_identity(self) -> "Secret":
        """
        Return a copy stripped of cluster-assigned identity.

        The copy owns fresh metadata and data mappings so it can be submitted
        as a brand new object.
        """
        return replace(
            self,
            labels=dict(self.labels),
            annotations=dict(self.annotations),
            data=dict(self.data),
            uid=None,
            resource_version=None,
            creation_timestamp=None,
        )


@dataclass
class ApplyResult:
    """Result of pushing one reconciled secret to the cluster."""

    namespace: str
    name: str
    action: ApplyAction
    message: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.namespace}/{self.name}"
