"""Configuration for the dynamic lending agent."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Catalog used when the agent runs without the planning service.
DEFAULT_MOCK_CATALOG: Dict[str, List[str]] = {
    "WETH": ["Arbitrum", "Base", "Ethereum"],
    "WBTC": ["Arbitrum", "Ethereum"],
    "ARB": ["Arbitrum"],
}

AGENT_MODES = ("mock", "live")


@dataclass(slots=True)
class LendingConfig:
    """Runtime settings for the lending conversation, oracle and dispatch."""

    model: str = "gpt-4o"
    temperature: float = 0.0
    mode: str = "mock"
    oracle_timeout: float = 30.0
    oracle_max_attempts: int = 3
    oracle_retry_delay: float = 0.5
    wallet_address: Optional[str] = None
    mock_catalog: Dict[str, List[str]] = field(
        default_factory=lambda: {token: list(chains) for token, chains in DEFAULT_MOCK_CATALOG.items()}
    )

    @classmethod
    def load(cls) -> "LendingConfig":
        load_dotenv()
        mode = os.getenv("LENDING_AGENT_MODE", "mock").strip().lower()
        if mode not in AGENT_MODES:
            raise ValueError(f"LENDING_AGENT_MODE must be one of {AGENT_MODES}, got '{mode}'.")
        return cls(
            model=os.getenv("LENDING_AGENT_MODEL", "gpt-4o"),
            temperature=float(os.getenv("LENDING_AGENT_TEMPERATURE", "0")),
            mode=mode,
            oracle_timeout=float(os.getenv("LENDING_ORACLE_TIMEOUT", "30")),
            oracle_max_attempts=int(os.getenv("LENDING_ORACLE_MAX_ATTEMPTS", "3")),
            oracle_retry_delay=float(os.getenv("LENDING_ORACLE_RETRY_DELAY", "0.5")),
            wallet_address=os.getenv("LENDING_WALLET_ADDRESS") or None,
        )


@lru_cache(maxsize=1)
def get_lending_config() -> LendingConfig:
    """Memoized accessor so callers share a single settings instance."""

    return LendingConfig.load()
