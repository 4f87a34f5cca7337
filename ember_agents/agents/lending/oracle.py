"""Disambiguation oracle: LLM-backed extraction and normalization of slot values."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ember_agents.agents.lending.intent import ParameterOptions, Slot
from ember_agents.agents.lending.prompt import (
    EXTRACTION_SYSTEM_PROMPT,
    LENDING_AGENT_SYSTEM_PROMPT,
    NORMALIZATION_SYSTEM_PROMPT,
    normalization_request,
)
from ember_agents.infrastructure.retry import RetryConfig, execute_with_retry
from ember_agents.llm.exceptions import LLMError, LLMProviderError, LLMTimeoutError

logger = logging.getLogger(__name__)

EXTRACTION_TOOL_NAME = "provide_parameters"


class OracleResponseError(ValueError):
    """The model answered with a tool call that does not follow the schema."""


class RawSlots(BaseModel):
    """Raw, unnormalized slot values read from one utterance."""

    model_config = ConfigDict(extra="ignore")

    action: Optional[str] = None
    token_name: Optional[str] = None
    chain_name: Optional[str] = None
    amount: Optional[str] = None

    @field_validator("action", "token_name", "chain_name", "amount", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        text = str(value).strip()
        return text or None

    def has_any(self) -> bool:
        return any(value is not None for value in self.model_dump().values())


class DisambiguationOracle(Protocol):
    async def normalize(
        self,
        raw_value: str,
        canonical_options: Sequence[str],
        slot: Slot,
    ) -> Optional[str]:
        """Return the verbatim matching option, or None when nothing matches confidently."""
        ...

    async def extract_raw_slots(
        self,
        utterance: str,
        options: ParameterOptions,
        history: Sequence[BaseMessage] = (),
    ) -> RawSlots:
        """Read zero or more raw slot values out of one user utterance."""
        ...


# ---------- Tool schemas ----------
def _normalization_tool(slot: Slot, options: Sequence[str]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": f"detect_{slot.value}",
            "description": (
                f"Determine which {slot.label} the user wants to use. "
                "If there is no option that matches, do not use the tool."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    slot.value: {
                        "type": "string",
                        "enum": list(options),
                        "description": f"The {slot.label} the user wants to use.",
                    }
                },
                "required": [],
            },
        },
    }


def _hint(label: str, options: Optional[List[str]]) -> str:
    if not options:
        return f"The {label} to use. Optional."
    return f"The {label} to use, as written by the user. Known values: {', '.join(options)}. Optional."


def _extraction_tool(options: ParameterOptions) -> Dict[str, Any]:
    action_property: Dict[str, Any] = {
        "type": "string",
        "description": "Action to perform, like 'borrow' or 'repay'. Single identifier. Optional.",
    }
    if options.action_options:
        action_property["enum"] = list(options.action_options)
    return {
        "type": "function",
        "function": {
            "name": EXTRACTION_TOOL_NAME,
            "description": (
                "Read some parameters from the given user message. If there is not enough info to fill "
                "all the parameters, only fill the provided ones and proceed without asking."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "action": action_property,
                    "token_name": {"type": "string", "description": _hint("token name", options.token_options)},
                    "chain_name": {"type": "string", "description": _hint("chain name", options.chain_options)},
                    "amount": {
                        "type": "string",
                        "description": "The amount of the asset to use, copied exactly as the user wrote it. Optional.",
                    },
                },
                "required": [],
            },
        },
    }


class LLMDisambiguationOracle:
    """Oracle backed by a LangChain chat model with tool calling."""

    def __init__(
        self,
        llm: BaseChatModel,
        *,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._llm = llm
        self._timeout = timeout
        self._retry_config = retry_config or RetryConfig(
            max_retries=3,
            base_delay=0.5,
            retryable_exceptions=(OracleResponseError,),
        )

    async def _invoke(self, messages: List[BaseMessage], tools: List[Dict[str, Any]]) -> AIMessage:
        bound = self._llm.bind_tools(tools)
        try:
            return await asyncio.wait_for(bound.ainvoke(messages), timeout=self._timeout)
        except TimeoutError as exc:
            raise LLMTimeoutError(f"Oracle call timed out after {self._timeout}s") from exc
        except LLMError:
            raise
        except Exception as exc:
            raise LLMProviderError(f"Oracle call failed: {exc}") from exc

    # ---------- Normalization ----------
    async def normalize(
        self,
        raw_value: str,
        canonical_options: Sequence[str],
        slot: Slot,
    ) -> Optional[str]:
        options = list(canonical_options)
        if not raw_value or not options:
            return None

        messages: List[BaseMessage] = [
            SystemMessage(content=NORMALIZATION_SYSTEM_PROMPT),
            HumanMessage(content=normalization_request(slot, raw_value)),
        ]
        try:
            value = await execute_with_retry(
                self._normalize_once,
                messages,
                slot,
                options,
                config=self._retry_config,
            )
        except (OracleResponseError, LLMError) as exc:
            logger.warning("Normalization of %s=%r gave no usable answer: %s", slot.value, raw_value, exc)
            return None

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Normalized %s=%r against %s -> %r", slot.value, raw_value, options, value)
        return value

    async def _normalize_once(
        self,
        messages: List[BaseMessage],
        slot: Slot,
        options: List[str],
    ) -> Optional[str]:
        message = await self._invoke(messages, [_normalization_tool(slot, options)])
        if not message.tool_calls:
            if message.invalid_tool_calls:
                raise OracleResponseError(f"Unparsable tool call: {message.invalid_tool_calls[0]}")
            return None
        value = message.tool_calls[0]["args"].get(slot.value)
        if value is None:
            return None
        if value not in options:
            raise OracleResponseError(f"{value!r} is not one of the offered options")
        return value

    # ---------- Extraction ----------
    async def extract_raw_slots(
        self,
        utterance: str,
        options: ParameterOptions,
        history: Sequence[BaseMessage] = (),
    ) -> RawSlots:
        messages: List[BaseMessage] = list(history) or [SystemMessage(content=LENDING_AGENT_SYSTEM_PROMPT)]
        messages += [
            SystemMessage(content=EXTRACTION_SYSTEM_PROMPT),
            HumanMessage(content=utterance),
        ]
        try:
            message = await self._invoke(messages, [_extraction_tool(options)])
        except LLMError as exc:
            logger.warning("Parameter extraction failed, treating the turn as empty: %s", exc)
            return RawSlots()

        if message.invalid_tool_calls:
            logger.warning("Ignoring malformed extraction output: %s", message.invalid_tool_calls)

        # Several calls are merged; the earliest call wins on overlapping fields.
        args: Dict[str, Any] = {}
        for call in reversed(message.tool_calls):
            if call.get("name") != EXTRACTION_TOOL_NAME:
                continue
            args.update(call.get("args") or {})

        try:
            raw = RawSlots.model_validate(args)
        except ValidationError as exc:
            logger.warning("Extraction arguments did not validate, treating the turn as empty: %s", exc)
            return RawSlots()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Extracted raw slots from %r: %s", utterance, raw.model_dump(exclude_none=True))
        return raw
