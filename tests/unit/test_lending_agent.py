from unittest.mock import AsyncMock, MagicMock

import pytest

from ember_agents.agents.lending.agent import DynamicLendingAgent
from ember_agents.agents.lending.config import LendingConfig, get_lending_config
from ember_agents.agents.lending.dispatcher import LoggingDispatcher, PlanningServiceDispatcher
from ember_agents.agents.lending.providers import CatalogOptionProvider, PlanningServiceOptionProvider


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("LENDING_AGENT_MODE", "LIVE")
    monkeypatch.setenv("LENDING_AGENT_MODEL", "gemini-2.5-flash")
    monkeypatch.setenv("LENDING_ORACLE_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("LENDING_WALLET_ADDRESS", "0xabc")

    config = LendingConfig.load()

    assert config.mode == "live"
    assert config.model == "gemini-2.5-flash"
    assert config.oracle_max_attempts == 5
    assert config.wallet_address == "0xabc"


def test_config_rejects_unknown_mode(monkeypatch):
    monkeypatch.setenv("LENDING_AGENT_MODE", "paper")
    get_lending_config.cache_clear()

    with pytest.raises(ValueError):
        get_lending_config()
    get_lending_config.cache_clear()


def test_mock_mode_uses_catalog_and_logging_dispatcher():
    agent = DynamicLendingAgent(LendingConfig(mode="mock"), llm=MagicMock())

    assert isinstance(agent.provider, CatalogOptionProvider)
    assert isinstance(agent.dispatch, LoggingDispatcher)
    assert agent.provider.chains_for_token("ARB") == ["Arbitrum"]
    assert agent.client is None


@pytest.mark.asyncio
async def test_live_mode_talks_to_planning_service():
    client = MagicMock()
    agent = DynamicLendingAgent(
        LendingConfig(mode="live", wallet_address="0xabc"),
        llm=MagicMock(),
        client=client,
    )

    assert isinstance(agent.provider, PlanningServiceOptionProvider)
    assert isinstance(agent.dispatch, PlanningServiceDispatcher)

    client.close = AsyncMock()
    await agent.aclose()
    client.close.assert_awaited_once()


def test_live_mode_requires_a_wallet():
    with pytest.raises(ValueError):
        DynamicLendingAgent(LendingConfig(mode="live"), llm=MagicMock(), client=MagicMock())
