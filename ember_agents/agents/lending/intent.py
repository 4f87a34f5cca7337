"""Lending payload model: slots, option sets and finalized actions."""
from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, assert_never


class LendingAction(str, Enum):
    SUPPLY = "supply"
    BORROW = "borrow"
    REPAY = "repay"
    WITHDRAW = "withdraw"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value: Any) -> Optional["LendingAction"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Slot(str, Enum):
    ACTION = "action"
    TOKEN_NAME = "token_name"
    CHAIN_NAME = "chain_name"
    AMOUNT = "amount"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


# Slots validated against an option set, in the order they are normalized.
NORMALIZED_SLOTS = (Slot.TOKEN_NAME, Slot.CHAIN_NAME)


# Plain decimal notation only; separators like "1,000" or "1,5" are ambiguous.
_AMOUNT_PATTERN = re.compile(r"\d+(?:\.\d+)?|\.\d+")


def parse_amount(value: Any) -> Optional[str]:
    """Return the amount text unchanged if it is a positive plain decimal, else None.

    The text is dispatched verbatim, so it is never rounded or reformatted.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not _AMOUNT_PATTERN.fullmatch(text):
        return None
    try:
        if Decimal(text) <= 0:
            return None
    except InvalidOperation:
        return None
    return text


@dataclass(frozen=True)
class ParameterOptions:
    """Canonical values currently acceptable per slot. ``None`` means unconstrained."""

    action_options: Optional[List[str]] = None
    token_options: Optional[List[str]] = None
    chain_options: Optional[List[str]] = None

    def for_slot(self, slot: Slot) -> Optional[List[str]]:
        match slot:
            case Slot.ACTION:
                return self.action_options
            case Slot.TOKEN_NAME:
                return self.token_options
            case Slot.CHAIN_NAME:
                return self.chain_options
            case Slot.AMOUNT:
                return None
            case _:
                assert_never(slot)

    def to_dict(self) -> Dict[str, Optional[List[str]]]:
        return {
            "action": self.action_options,
            "token_name": self.token_options,
            "chain_name": self.chain_options,
        }


@dataclass(frozen=True)
class FinalizedAction:
    """Immutable, fully specified lending request handed to the dispatch callback."""

    action: LendingAction
    token_name: str
    chain_name: str
    amount: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "action": self.action.value,
            "token_name": self.token_name,
            "chain_name": self.chain_name,
            "amount": self.amount,
        }


@dataclass
class LendingPayload:
    """Accumulated, partially resolved state of the single in-progress action."""

    action: Optional[LendingAction] = None
    provided_token_name: Optional[str] = None
    specified_token_name: Optional[str] = None
    provided_chain_name: Optional[str] = None
    specified_chain_name: Optional[str] = None
    amount: Optional[str] = None

    def copy(self) -> "LendingPayload":
        return dataclasses.replace(self)

    def is_empty(self) -> bool:
        return all(value is None for value in dataclasses.astuple(self))

    def provided(self, slot: Slot) -> Optional[str]:
        match slot:
            case Slot.TOKEN_NAME:
                return self.provided_token_name
            case Slot.CHAIN_NAME:
                return self.provided_chain_name
            case Slot.ACTION:
                return self.action.value if self.action else None
            case Slot.AMOUNT:
                return self.amount
            case _:
                assert_never(slot)

    def specified(self, slot: Slot) -> Optional[str]:
        match slot:
            case Slot.TOKEN_NAME:
                return self.specified_token_name
            case Slot.CHAIN_NAME:
                return self.specified_chain_name
            case Slot.ACTION:
                return self.action.value if self.action else None
            case Slot.AMOUNT:
                return self.amount
            case _:
                assert_never(slot)

    def specify(self, slot: Slot, canonical: str) -> None:
        match slot:
            case Slot.TOKEN_NAME:
                self.specified_token_name = canonical
            case Slot.CHAIN_NAME:
                self.specified_chain_name = canonical
            case Slot.ACTION | Slot.AMOUNT:
                raise ValueError(f"Slot '{slot.value}' has no canonical option set.")
            case _:
                assert_never(slot)

    def provide(self, slot: Slot, raw: str) -> bool:
        """Store a raw value; a changed raw value drops the stale canonical one first.

        Returns True when the raw value differs from the previous one.
        """
        match slot:
            case Slot.TOKEN_NAME:
                changed = raw != self.provided_token_name
                if changed:
                    self.specified_token_name = None
                self.provided_token_name = raw
            case Slot.CHAIN_NAME:
                changed = raw != self.provided_chain_name
                if changed:
                    self.specified_chain_name = None
                self.provided_chain_name = raw
            case Slot.ACTION | Slot.AMOUNT:
                raise ValueError(f"Slot '{slot.value}' is set directly, not provided.")
            case _:
                assert_never(slot)
        return changed

    def reset_slot(self, slot: Slot) -> None:
        match slot:
            case Slot.ACTION:
                self.action = None
            case Slot.TOKEN_NAME:
                self.provided_token_name = None
                self.specified_token_name = None
            case Slot.CHAIN_NAME:
                self.provided_chain_name = None
                self.specified_chain_name = None
            case Slot.AMOUNT:
                self.amount = None
            case _:
                assert_never(slot)

    def missing_slots(self) -> List[Slot]:
        missing: List[Slot] = []
        if self.action is None:
            missing.append(Slot.ACTION)
        if self.specified_token_name is None:
            missing.append(Slot.TOKEN_NAME)
        if self.specified_chain_name is None:
            missing.append(Slot.CHAIN_NAME)
        if self.amount is None:
            missing.append(Slot.AMOUNT)
        return missing

    def pending_slots(self) -> List[Slot]:
        """Slots holding a raw value that has not been normalized yet."""
        return [
            slot
            for slot in NORMALIZED_SLOTS
            if self.provided(slot) is not None and self.specified(slot) is None
        ]

    def to_public(self) -> Dict[str, str]:
        public: Dict[str, str] = {}
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if value is None:
                continue
            public[field.name] = value.value if isinstance(value, LendingAction) else value
        return public
