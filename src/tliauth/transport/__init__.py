"""
TLIAuth Transport Layer

Gateway address resolution and TCP connection handling.
"""

from tliauth.transport.gateway_transport import (
    DNSResolver,
    GatewayConnection,
    ResolverMode,
    SystemResolver,
    create_resolver,
)

__all__ = [
    "GatewayConnection",
    "ResolverMode",
    "SystemResolver",
    "DNSResolver",
    "create_resolver",
]
