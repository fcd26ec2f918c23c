"""
Secret store gateways.

A gateway is the only component that talks to the cluster. It is constructed
once per run and passed explicitly to the controller and applier.
"""

from gateway.base import GatewayError, SecretGateway, SecretNotFoundError

__all__ = [
    "GatewayError",
    "SecretGateway",
    "SecretNotFoundError",
]
