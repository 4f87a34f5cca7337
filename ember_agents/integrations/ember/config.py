from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(slots=True)
class EmberGatewaySettings:
    """Runtime configuration for the transaction-planning service client."""

    base_url: str
    api_key: Optional[str] = None
    service_name: str = "ember-lending-agent"
    request_timeout: float = 10.0

    @classmethod
    def load(cls) -> "EmberGatewaySettings":
        base_url = os.getenv("EMBER_API_URL")
        if not base_url:
            raise ValueError("EMBER_API_URL environment variable is required.")

        return cls(
            base_url=base_url.rstrip("/"),
            api_key=os.getenv("EMBER_API_KEY") or None,
            service_name=os.getenv("EMBER_SERVICE_NAME", "ember-lending-agent"),
            request_timeout=float(os.getenv("EMBER_API_TIMEOUT", "10")),
        )


@lru_cache(maxsize=1)
def get_ember_settings() -> EmberGatewaySettings:
    """Memoized accessor so callers share a single settings instance."""

    return EmberGatewaySettings.load()
