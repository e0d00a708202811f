"""
Message Router for deciding how a chat message that found no knowledge match is handled.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

logger = logging.getLogger(__name__)


class MessageIntent(Enum):
    """Ways a chat message can be answered."""
    SEARCH = "search"
    CALCULATION = "calculation"
    TEXT = "text"


@dataclass
class RoutingDecision:
    """Result of message routing."""
    intent: MessageIntent
    payload: str
    reasoning: str


class MessageRouter:
    """Rule-based router for chat commands."""

    def __init__(self, config: Dict[str, Any] = None):
        config = config or {}
        self.search_command = config.get("search_command", "/search")
        self.calc_command = config.get("calc_command", "/calc")
        self.search_patterns = config.get("search_patterns", ["search"])
        self.calc_patterns = config.get("calc_patterns", ["calculate"])

    def route(self, message: str) -> RoutingDecision:
        """
        Route a message to a handler.

        A leading command (``/search``, ``/calc``) or a trigger word anywhere
        in the message selects the handler; the command is stripped from the
        payload unless nothing would remain.
        """
        text = message.strip()
        text_lower = text.lower()

        if text.startswith(self.search_command) or any(p in text_lower for p in self.search_patterns):
            decision = RoutingDecision(
                intent=MessageIntent.SEARCH,
                payload=self._strip_command(text, self.search_command),
                reasoning="Search command or keyword detected",
            )
        elif text.startswith(self.calc_command) or any(p in text_lower for p in self.calc_patterns):
            decision = RoutingDecision(
                intent=MessageIntent.CALCULATION,
                payload=self._strip_command(text, self.calc_command),
                reasoning="Calculation command or keyword detected",
            )
        else:
            decision = RoutingDecision(
                intent=MessageIntent.TEXT,
                payload=text,
                reasoning="No command detected - plain text response",
            )

        logger.debug(f"Routed '{text}' to {decision.intent.value}")
        return decision

    @staticmethod
    def _strip_command(text: str, command: str) -> str:
        payload = text.replace(command, "", 1).strip() if text.startswith(command) else text
        return payload or text
