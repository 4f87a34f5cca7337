"""Transaction-planning service client helpers."""

from .client import EmberGatewayClient, EmberGatewayError
from .config import EmberGatewaySettings, get_ember_settings

__all__ = [
    "EmberGatewayClient",
    "EmberGatewayError",
    "EmberGatewaySettings",
    "get_ember_settings",
]
