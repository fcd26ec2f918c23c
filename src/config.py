"""
Configuration module for secret-sync.

Loads configuration from environment variables. The template directory may
also be passed on the command line, which is used only when SECRETS_DIR is
not set.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from models import SyncMode

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SyncConfig:
    """Template source and apply mode."""

    secrets_dir: str = ""
    mode: SyncMode = SyncMode.APPLY

    @classmethod
    def from_env(cls, secrets_dir: Optional[str] = None):
        """
        Load from environment variables.

        Args:
            secrets_dir: Fallback directory used when SECRETS_DIR is unset
        """
        directory = os.getenv("SECRETS_DIR", "") or secrets_dir or ""
        if not directory:
            raise ValueError(
                "SECRETS_DIR environment variable or a directory argument must be set."
            )

        mode_name = os.getenv("SYNC_MODE", SyncMode.APPLY.value).strip().lower()
        try:
            mode = SyncMode(mode_name)
        except ValueError:
            valid = ", ".join(m.value for m in SyncMode)
            raise ValueError(
                f"Invalid SYNC_MODE '{mode_name}', expected one of: {valid}"
            ) from None

        return cls(secrets_dir=directory, mode=mode)


def _default_kubeconfig() -> str:
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


@dataclass
class KubernetesConfig:
    """Cluster connection configuration."""

    kubeconfig: str = field(default_factory=_default_kubeconfig)
    context: Optional[str] = None

    @property
    def in_cluster(self) -> bool:
        """Assume we run inside the cluster when there is no kubeconfig file."""
        return not (self.kubeconfig and os.path.exists(self.kubeconfig))

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            kubeconfig=os.getenv("KUBECONFIG") or _default_kubeconfig(),
            context=os.getenv("KUBE_CONTEXT") or None,
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        if level not in LOG_LEVELS:
            valid = ", ".join(LOG_LEVELS)
            raise ValueError(
                f"Invalid LOG_LEVEL '{level}', expected one of: {valid}"
            )
        return cls(level=level)


@dataclass
class Config:
    """Main configuration object."""

    sync: SyncConfig
    kubernetes: KubernetesConfig
    logging: LoggingConfig

    @classmethod
    def from_env(cls, secrets_dir: Optional[str] = None):
        """Load all configuration from environment variables."""
        return cls(
            sync=SyncConfig.from_env(secrets_dir),
            kubernetes=KubernetesConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            sync=SyncConfig(),
            kubernetes=KubernetesConfig(),
            logging=LoggingConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config(secrets_dir: Optional[str] = None) -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env(secrets_dir)
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
