"""
API server module exposing the staking engine over HTTP.

Provides HTTP endpoints for:
- /v0/health - Health check endpoint
- /v0/config, /v0/epochs/..., /v0/positions/... - Engine queries
- /v0/stake, /v0/withdraw, /v0/claim, /v0/epochs/{epoch}/snapshot - Operations

Also provides a client for remote engines:
- ApiClient: Async wrapper around the same routes
"""

from .client import ApiClient, ApiError
from .server import ApiServer, ApiServerConfig

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiServer",
    "ApiServerConfig",
]
