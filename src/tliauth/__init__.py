"""
TLIAuth - Two-Factor Token Authentication over TLI

Client for legacy identity gateways that validate one-time token codes
through the binary Transaction Logic Interface (TLI) protocol, with
EBCDIC-encoded payloads over TCP.

Example Usage:
    from tliauth import GatewayAuthenticator, GatewayConfig

    config = GatewayConfig(
        host="gateway.example.edu",
        port=7001,
        application_id="APP1",
    )
    auth = GatewayAuthenticator(config)

    outcome = auth.authenticate("alice", "123456")
    if outcome.authenticated:
        print("Token accepted")

Embedding hosts that expect the plain integer result code can call
``tliauth.authenticate(server, port, app_id, user_id, token)``.
"""

from tliauth.core.types import AuthOutcome, Credentials, ResultCode
from tliauth.gateway.authenticator import (
    GatewayAuthenticator,
    GatewayConfig,
    authenticate,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "authenticate",
    "GatewayAuthenticator",
    "GatewayConfig",
    # Types
    "AuthOutcome",
    "Credentials",
    "ResultCode",
    # Metadata
    "__version__",
]
