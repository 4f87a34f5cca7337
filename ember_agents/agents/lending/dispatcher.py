"""Finalization of complete payloads and the one-time hand-off to a dispatch callback."""
from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union, assert_never

from ember_agents.agents.lending.intent import FinalizedAction, LendingAction, LendingPayload
from ember_agents.integrations.ember import EmberGatewayClient

if TYPE_CHECKING:
    from ember_agents.agents.lending.controller import LendingSession
    from ember_agents.agents.lending.providers import OptionProvider

logger = logging.getLogger(__name__)

DispatchCallback = Callable[[FinalizedAction], Union[None, Awaitable[None]]]


class LendingDispatchError(RuntimeError):
    """The dispatch callback failed. The payload was already reset when this is raised."""

    def __init__(self, message: str, action: FinalizedAction) -> None:
        super().__init__(message)
        self.action = action


def finalize_payload(payload: LendingPayload) -> Optional[FinalizedAction]:
    """Freeze the payload into an action request once every required slot is concrete."""

    if (
        payload.action is None
        or payload.specified_token_name is None
        or payload.specified_chain_name is None
        or payload.amount is None
    ):
        return None
    return FinalizedAction(
        action=payload.action,
        token_name=payload.specified_token_name,
        chain_name=payload.specified_chain_name,
        amount=payload.amount,
    )


class DispatchGate:
    """Dispatches a finalized payload exactly once, then resets the session for the next action."""

    def __init__(self, dispatch: DispatchCallback, provider: "OptionProvider") -> None:
        self._dispatch = dispatch
        self._provider = provider

    async def reset(self, session: "LendingSession") -> None:
        session.payload = LendingPayload()
        session.options = await self._provider.get_options(session.payload)

    async def commit(self, session: "LendingSession") -> Optional[FinalizedAction]:
        action = finalize_payload(session.payload)
        if action is None:
            logger.debug("Not dispatching yet, missing %s", [slot.value for slot in session.payload.missing_slots()])
            return None

        logger.info("Dispatching lending action %s", action.to_dict())
        try:
            result = self._dispatch(action)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.exception("Dispatch callback failed for %s", action.to_dict())
            raise LendingDispatchError(f"Dispatch failed: {exc}", action) from exc
        finally:
            # The action counts as sent the moment it was finalized.
            await self.reset(session)
        return action


class LoggingDispatcher:
    """Dispatch callback for demo runs: records actions instead of executing them."""

    def __init__(self) -> None:
        self.dispatched: List[FinalizedAction] = []

    def __call__(self, action: FinalizedAction) -> None:
        logger.info("[dispatching] %s", action.to_dict())
        self.dispatched.append(action)


def plan_request(action: FinalizedAction, wallet_address: str) -> Tuple[str, Dict[str, Any]]:
    """Endpoint and body asking the planning service for ``action``'s transactions."""

    body: Dict[str, Any] = {
        "tokenName": action.token_name,
        "chainName": action.chain_name,
        "amount": action.amount,
    }
    match action.action:
        case LendingAction.SUPPLY:
            body["supplierWalletAddress"] = wallet_address
        case LendingAction.BORROW | LendingAction.REPAY:
            body["borrowerWalletAddress"] = wallet_address
        case LendingAction.WITHDRAW:
            body["lenderWalletAddress"] = wallet_address
        case _:
            assert_never(action.action)
    return f"/v1/lending/{action.action.value}", body


class PlanningServiceDispatcher:
    """Requests transaction plans for finalized actions. Signing is left to the wallet."""

    def __init__(self, client: EmberGatewayClient, wallet_address: str) -> None:
        if not wallet_address:
            raise ValueError("A wallet address is required to plan lending transactions.")
        self._client = client
        self._wallet_address = wallet_address
        self.last_plans: List[Dict[str, Any]] = []

    async def __call__(self, action: FinalizedAction) -> None:
        path, body = plan_request(action, self._wallet_address)
        self.last_plans = await self._client.plan_lending_action(path, body)
        logger.info(
            "Planning service returned %d transaction(s) for %s",
            len(self.last_plans),
            action.to_dict(),
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Transaction plans: %s", self.last_plans)
