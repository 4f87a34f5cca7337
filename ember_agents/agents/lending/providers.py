"""Option providers: the per-slot sets of canonical values a payload may still take."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Protocol, Sequence

import httpx

from ember_agents.agents.lending.intent import LendingAction, LendingPayload, ParameterOptions
from ember_agents.integrations.ember import EmberGatewayClient, EmberGatewayError

logger = logging.getLogger(__name__)


class OptionProvider(Protocol):
    async def get_options(self, payload: LendingPayload) -> ParameterOptions:
        """Return option sets, each constrained by the other slots' specified values."""
        ...


def _unique(values: Sequence[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def unconstrained_options() -> ParameterOptions:
    return ParameterOptions(action_options=LendingAction.values())


class CatalogOptionProvider:
    """Serves options from a ``token -> chains`` catalog.

    Tokens are narrowed by the specified chain and chains by the specified token.
    A specified value missing from the catalog yields an empty set for the other slot.
    """

    def __init__(self, catalog: Mapping[str, Sequence[str]]) -> None:
        self._catalog: Dict[str, List[str]] = {token: _unique(list(chains)) for token, chains in catalog.items()}

    def token_names(self) -> List[str]:
        return list(self._catalog.keys())

    def chain_names(self) -> List[str]:
        return _unique([chain for chains in self._catalog.values() for chain in chains])

    def chains_for_token(self, token: str) -> List[str]:
        return list(self._catalog.get(token, []))

    def tokens_for_chain(self, chain: str) -> List[str]:
        return [token for token, chains in self._catalog.items() if chain in chains]

    async def get_options(self, payload: LendingPayload) -> ParameterOptions:
        chain = payload.specified_chain_name
        token = payload.specified_token_name
        return ParameterOptions(
            action_options=LendingAction.values(),
            token_options=self.token_names() if chain is None else self.tokens_for_chain(chain),
            chain_options=self.chain_names() if token is None else self.chains_for_token(token),
        )


class PlanningServiceOptionProvider:
    """Fetches the lending catalog from the planning service on every query.

    Service failures degrade to unconstrained option sets so the conversation can go on.
    """

    def __init__(self, client: EmberGatewayClient) -> None:
        self._client = client

    async def get_options(self, payload: LendingPayload) -> ParameterOptions:
        try:
            catalog = await self._client.get_lending_catalog()
        except (EmberGatewayError, httpx.HTTPError) as exc:
            logger.warning("Lending catalog unavailable, options left unconstrained: %s", exc)
            return unconstrained_options()
        options = await CatalogOptionProvider(catalog).get_options(payload)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Options for payload=%s: %s", payload.to_public(), options.to_dict())
        return options
