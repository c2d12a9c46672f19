"""
TLIAuth Gateway Module

High-level entry points for token authentication.
"""

from tliauth.gateway.authenticator import (
    GatewayAuthenticator,
    GatewayConfig,
    ReentrancyGuard,
    authenticate,
    create_gateway_authenticator,
)

__all__ = [
    "GatewayAuthenticator",
    "GatewayConfig",
    "ReentrancyGuard",
    "authenticate",
    "create_gateway_authenticator",
]
