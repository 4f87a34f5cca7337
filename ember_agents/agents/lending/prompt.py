"""Prompts and reply templates for the dynamic lending agent."""
from __future__ import annotations

from typing import List, Optional, Sequence

from ember_agents.agents.lending.intent import LendingAction, Slot

LENDING_AGENT_SYSTEM_PROMPT = """
You are a helpful assistant that provides access to blockchain lending and borrowing functionalities \
(supply, borrow, repay, withdraw) through the Ember transaction-planning service.
NEVER respond in markdown, ALWAYS use plain text. Never add links to your response.
Do not suggest the user to ask questions. When an unknown error happens, do not try to guess the error reason.
Be succinct. Use bullet lists to enumerate options. Never enclose token names in quotes.
""".strip()

EXTRACTION_SYSTEM_PROMPT = """
You read lending parameters out of the latest user message of a chat.
The parameters are written in natural language and may contain typos.
Call the `provide_parameters` tool with ONLY the parameters the latest message mentions, copied as the user wrote them.
All parameters are optional. If the message mentions none of them, do not call the tool.
NEVER ask the user for parameters and never invent values that were not mentioned.
""".strip()

NORMALIZATION_SYSTEM_PROMPT = """
You map a user-supplied value onto exactly one option from a fixed list.
The value may contain typos, different casing or an alias (for example "arbitrum one" for "Arbitrum").
If one option clearly matches, call the tool with that option verbatim.
If no option matches with confidence, do not call the tool.
""".strip()

DISPATCH_ACKNOWLEDGEMENT = "Done! The action has been sent for execution."

CAPABILITIES = (
    "I can help you supply, borrow, repay or withdraw tokens on supported chains. "
    "Tell me what you would like to do, which token and chain to use, and the amount."
)

_SLOT_QUESTIONS = {
    Slot.ACTION: "What would you like to do?",
    Slot.TOKEN_NAME: "Which token would you like to use?",
    Slot.CHAIN_NAME: "On which chain?",
    Slot.AMOUNT: "How much would you like to use?",
}


def normalization_request(slot: Slot, raw_value: str) -> str:
    return f"Determine which {slot.label} is this: {raw_value}"


def format_options(options: Optional[Sequence[str]]) -> str:
    if not options:
        return ""
    return "\n".join(f"- {option}" for option in options)


def slot_question(slot: Slot, options: Optional[Sequence[str]], token_name: Optional[str] = None) -> str:
    question = _SLOT_QUESTIONS[slot]
    if slot == Slot.AMOUNT and token_name:
        question = f"How much {token_name}?"
    listing = format_options(options)
    if listing:
        return f"{question} Available options:\n{listing}"
    return question


def unmatched_note(slot: Slot, raw_value: str) -> str:
    return f"I could not match {raw_value} to a supported {slot.label}."


def refusal_message(slot: Slot, raw_value: Optional[str], combination: str) -> str:
    value = raw_value or f"that {slot.label}"
    suffix = f" for {combination}" if combination else ""
    return f"Sorry, {value} is not a valid {slot.label}{suffix}."


def describe_combination(action: Optional[LendingAction], token: Optional[str], chain: Optional[str]) -> str:
    parts: List[str] = []
    if action is not None:
        parts.append(action.value)
    if token:
        parts.append(token)
    if chain:
        parts.append(f"on {chain}")
    return " ".join(parts)
