import logging
from typing import Optional

from langchain_core.language_models import BaseChatModel

from ember_agents.agents.lending.config import LendingConfig
from ember_agents.agents.lending.controller import LendingConversationController
from ember_agents.agents.lending.dispatcher import (
    DispatchCallback,
    LoggingDispatcher,
    PlanningServiceDispatcher,
)
from ember_agents.agents.lending.oracle import LLMDisambiguationOracle, OracleResponseError
from ember_agents.agents.lending.providers import (
    CatalogOptionProvider,
    OptionProvider,
    PlanningServiceOptionProvider,
)
from ember_agents.infrastructure.retry import RetryConfig
from ember_agents.integrations.ember import EmberGatewayClient
from ember_agents.llm import LLMFactory

logger = logging.getLogger(__name__)


class DynamicLendingAgent:
    """Wires the lending conversation to its oracle, option source and dispatcher."""

    def __init__(
        self,
        config: LendingConfig,
        *,
        llm: Optional[BaseChatModel] = None,
        client: Optional[EmberGatewayClient] = None,
        dispatch: Optional[DispatchCallback] = None,
    ):
        self.config = config
        self.llm = llm or LLMFactory.create(config.model, temperature=config.temperature)
        self.oracle = LLMDisambiguationOracle(
            self.llm,
            retry_config=RetryConfig(
                max_retries=config.oracle_max_attempts,
                base_delay=config.oracle_retry_delay,
                retryable_exceptions=(OracleResponseError,),
            ),
            timeout=config.oracle_timeout,
        )

        self.client: Optional[EmberGatewayClient] = None
        provider: OptionProvider
        if config.mode == "live":
            self.client = client or EmberGatewayClient()
            provider = PlanningServiceOptionProvider(self.client)
            dispatch = dispatch or PlanningServiceDispatcher(self.client, config.wallet_address or "")
        else:
            provider = CatalogOptionProvider(config.mock_catalog)
            dispatch = dispatch or LoggingDispatcher()

        self.provider = provider
        self.dispatch = dispatch
        self.controller = LendingConversationController(provider, self.oracle, dispatch)
        logger.info("Lending agent ready (mode=%s, model=%s)", config.mode, config.model)

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
