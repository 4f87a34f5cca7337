"""Turn-by-turn driver of the lending conversation."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, Field

from ember_agents.agents.lending.dispatcher import DispatchCallback, DispatchGate, LendingDispatchError
from ember_agents.agents.lending.intent import FinalizedAction, LendingPayload, ParameterOptions, Slot
from ember_agents.agents.lending.oracle import DisambiguationOracle
from ember_agents.agents.lending.prompt import (
    CAPABILITIES,
    DISPATCH_ACKNOWLEDGEMENT,
    LENDING_AGENT_SYSTEM_PROMPT,
    describe_combination,
    refusal_message,
    slot_question,
    unmatched_note,
)
from ember_agents.agents.lending.providers import OptionProvider
from ember_agents.agents.lending.refinement import RefinementResult, merge_raw_slots, refine_payload

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    MERGING = "merging"
    DISPATCHED = "dispatched"
    AWAITING_MORE_INFO = "awaiting_more_info"
    REFUSED = "refused"


@dataclass
class LendingSession:
    """Conversation state threaded through every turn. One action payload at a time."""

    payload: LendingPayload = field(default_factory=LendingPayload)
    options: ParameterOptions = field(default_factory=ParameterOptions)
    history: List[BaseMessage] = field(default_factory=list)
    initialized: bool = False
    turn_state: TurnState = TurnState.AWAITING_INPUT
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)


class AgentResponse(BaseModel):
    content: str
    state: TurnState
    missing_slots: List[Slot] = Field(default_factory=list)
    options: Dict[str, Optional[List[str]]] = Field(default_factory=dict)
    refusal_slot: Optional[Slot] = None
    dispatched: Optional[Dict[str, str]] = None


class LendingConversationController:
    def __init__(
        self,
        provider: OptionProvider,
        oracle: DisambiguationOracle,
        dispatch: DispatchCallback,
    ) -> None:
        self._provider = provider
        self._oracle = oracle
        self._gate = DispatchGate(dispatch, provider)

    async def start_session(self) -> LendingSession:
        session = LendingSession()
        await self._initialize(session)
        return session

    async def _initialize(self, session: LendingSession) -> None:
        session.history = [SystemMessage(content=LENDING_AGENT_SYSTEM_PROMPT)]
        await self._gate.reset(session)
        session.turn_state = TurnState.AWAITING_INPUT
        session.initialized = True

    async def abandon(self, session: LendingSession) -> None:
        """Drop the in-progress action so the next message starts a new one."""

        async with session.lock:
            logger.info("Abandoning lending payload %s", session.payload.to_public())
            await self._gate.reset(session)

    async def process_user_input(self, session: LendingSession, utterance: str) -> AgentResponse:
        async with session.lock:
            if not session.initialized:
                await self._initialize(session)
            return await self._run_turn(session, utterance)

    async def _run_turn(self, session: LendingSession, utterance: str) -> AgentResponse:
        logger.info("Processing user input %r", utterance)
        prior_history = list(session.history)
        session.history.append(HumanMessage(content=utterance))
        session.turn_state = TurnState.MERGING

        raw = await self._oracle.extract_raw_slots(utterance, session.options, prior_history)
        payload, touched = merge_raw_slots(session.payload, raw)
        if not touched:
            logger.info("No lending parameters in this message; payload left as is")
            intro = CAPABILITIES if session.payload.is_empty() else None
            return self._reply(session, TurnState.AWAITING_MORE_INFO, self._ask(session, intro=intro))

        result = await refine_payload(payload, self._provider, self._oracle)
        session.payload = result.payload
        session.options = result.options
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Refined payload=%s options=%s refusal=%s",
                session.payload.to_public(),
                session.options.to_dict(),
                result.refusal_slot,
            )

        try:
            action = await self._gate.commit(session)
        except LendingDispatchError as exc:
            self._record_dispatch(session, exc.action)
            session.turn_state = TurnState.AWAITING_INPUT
            raise

        if action is not None:
            self._record_dispatch(session, action)
            return self._reply(session, TurnState.DISPATCHED, DISPATCH_ACKNOWLEDGEMENT, dispatched=action)

        if result.refusal:
            return self._reply(
                session,
                TurnState.REFUSED,
                self._refusal(session, result),
                refusal_slot=result.refusal_slot,
            )

        return self._reply(session, TurnState.AWAITING_MORE_INFO, self._ask(session))

    # ---------- Reply builders ----------
    def _ask(self, session: LendingSession, intro: Optional[str] = None) -> str:
        payload = session.payload
        parts: List[str] = [intro] if intro else []
        for slot in payload.pending_slots():
            parts.append(unmatched_note(slot, payload.provided(slot)))
        for slot in payload.missing_slots():
            parts.append(slot_question(slot, session.options.for_slot(slot), payload.specified_token_name))
        return "\n".join(parts)

    def _refusal(self, session: LendingSession, result: RefinementResult) -> str:
        payload = session.payload
        slot = result.refusal_slot
        combination = describe_combination(payload.action, payload.specified_token_name, payload.specified_chain_name)
        return "\n".join(
            [
                refusal_message(slot, result.refused_value, combination),
                slot_question(slot, session.options.for_slot(slot), payload.specified_token_name),
            ]
        )

    def _record_dispatch(self, session: LendingSession, action: FinalizedAction) -> None:
        session.history.append(
            AIMessage(
                content="Dispatching tool call with these parameters: "
                + json.dumps(action.to_dict(), indent=2)
            )
        )

    def _reply(
        self,
        session: LendingSession,
        state: TurnState,
        content: str,
        *,
        refusal_slot: Optional[Slot] = None,
        dispatched: Optional[FinalizedAction] = None,
    ) -> AgentResponse:
        session.history.append(AIMessage(content=content))
        session.turn_state = TurnState.AWAITING_INPUT
        return AgentResponse(
            content=content,
            state=state,
            missing_slots=session.payload.missing_slots(),
            options=session.options.to_dict(),
            refusal_slot=refusal_slot,
            dispatched=dispatched.to_dict() if dispatched else None,
        )


class SessionRegistry:
    """Keeps one in-memory lending session per user conversation."""

    def __init__(self, controller: LendingConversationController) -> None:
        self._controller = controller
        self._sessions: Dict[str, LendingSession] = {}
        # Held while a new session is initialized so concurrent first messages share it.
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(user_id: Optional[str], conversation_id: Optional[str]) -> str:
        resolved_user = (user_id or "").strip()
        resolved_conversation = (conversation_id or "").strip()
        if not resolved_user:
            raise ValueError("user_id is required for lending conversations.")
        if not resolved_conversation:
            raise ValueError("conversation_id is required for lending conversations.")
        return f"{resolved_user}:{resolved_conversation}"

    async def get_or_create(self, user_id: str, conversation_id: str) -> LendingSession:
        key = self._key(user_id, conversation_id)
        async with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = await self._controller.start_session()
                self._sessions[key] = session
                logger.info("Created lending session %s", key)
        return session

    async def process(self, user_id: str, conversation_id: str, utterance: str) -> AgentResponse:
        session = await self.get_or_create(user_id, conversation_id)
        return await self._controller.process_user_input(session, utterance)

    def drop(self, user_id: str, conversation_id: str) -> None:
        self._sessions.pop(self._key(user_id, conversation_id), None)

    def __len__(self) -> int:
        return len(self._sessions)
