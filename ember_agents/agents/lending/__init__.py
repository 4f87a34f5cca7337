"""Dynamic lending agent package exposing helper factories."""

from __future__ import annotations

__all__ = ["DynamicLendingAgent", "LendingConversationController", "SessionRegistry"]


def __getattr__(name: str):
    if name == "DynamicLendingAgent":
        from .agent import DynamicLendingAgent as _DynamicLendingAgent

        return _DynamicLendingAgent
    if name == "LendingConversationController":
        from .controller import LendingConversationController as _LendingConversationController

        return _LendingConversationController
    if name == "SessionRegistry":
        from .controller import SessionRegistry as _SessionRegistry

        return _SessionRegistry
    raise AttributeError(name)
