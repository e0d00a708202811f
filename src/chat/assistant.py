"""
Chat Assistant answering messages from the knowledge base.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..kb.knowledge_base import KnowledgeBase
from ..kb.models import Feedback, KnowledgeMatch, LearningData
from ..kb.pair_store import pair_to_dict
from ..router.message_router import MessageIntent, MessageRouter
from .models import ChatMessage, Choice

logger = logging.getLogger(__name__)

FALLBACK_TEMPLATE = (
    "I understand you're asking about \"{}\". This is a sample response that would "
    "typically contain relevant information based on your query. For more accurate "
    "answers, try asking specific questions or enable the knowledge base feature."
)

FEEDBACK_ACKNOWLEDGEMENTS = {
    Feedback.POSITIVE: "Thanks for the positive feedback!",
    Feedback.NEGATIVE: "Thanks for the feedback. I'll learn from this.",
    Feedback.NEUTRAL: "Feedback received",
}

FEEDBACK_CHOICES = {
    "feedback_positive": Feedback.POSITIVE,
    "feedback_negative": Feedback.NEGATIVE,
}


class ChatAssistant:
    """Conversation front-end over a KnowledgeBase."""

    def __init__(
        self,
        config: Dict[str, Any],
        knowledge_base: KnowledgeBase,
        router: Optional[MessageRouter] = None,
    ):
        self.config = config
        self.knowledge_base = knowledge_base
        self.router = router or MessageRouter(config.get("router", {}))

        self.knowledge_enabled = config.get("knowledge_enabled", True)
        self.response_delay = config.get("response_delay", 0.8)
        self.feedback_cutoff = config.get("feedback_cutoff", 0.95)
        self.max_search_results = config.get("max_search_results", 5)

        self.conversation_id = uuid.uuid4().hex
        self.messages: List[ChatMessage] = []

    def _append(self, role: str, content: str, **kwargs) -> ChatMessage:
        message = ChatMessage(
            id=uuid.uuid4().hex,
            role=role,
            content=content,
            timestamp=datetime.now(),
            **kwargs
        )
        self.messages.append(message)
        return message

    async def respond(self, text: str) -> Optional[ChatMessage]:
        """
        Answer a user message.

        The knowledge base is consulted first; without a match the message
        is routed to search, calculation or the plain text fallback.

        Args:
            text: The user's message

        Returns:
            The assistant message, or None for blank input
        """
        text = text.strip()
        if not text:
            return None

        self._append("user", text)

        if self.knowledge_enabled:
            match = await self.knowledge_base.find_best_match(text)
            if match:
                return await self._knowledge_reply(match)

        decision = self.router.route(text)
        logger.debug(f"Routing decision: {decision.reasoning}")

        if decision.intent is MessageIntent.SEARCH:
            return await self._search_reply(decision.payload)
        if decision.intent is MessageIntent.CALCULATION:
            return await self._calculation_reply(decision.payload)
        return await self._text_reply(text)

    async def _knowledge_reply(self, match: KnowledgeMatch) -> ChatMessage:
        await asyncio.sleep(self.response_delay)

        choices = []
        if match.confidence < self.feedback_cutoff:
            choices = [
                Choice("feedback_positive", "This answer was helpful", round(match.confidence * 100)),
                Choice("feedback_negative", "This wasn't what I was looking for", round((1 - match.confidence) * 100)),
                Choice("more_info", "Tell me more about this", 85),
            ]

        return self._append(
            "assistant",
            match.pair.answer,
            type="knowledge",
            confidence=match.confidence,
            knowledge_match=match,
            choices=choices,
        )

    async def _search_reply(self, query: str) -> ChatMessage:
        await asyncio.sleep(self.response_delay)

        results = self.knowledge_base.search_knowledge(query)[:self.max_search_results]
        if results:
            lines = [f"I found {len(results)} relevant results for \"{query}\":"]
            lines.extend(f"- {pair.question} -> {pair.answer}" for pair in results)
            content = "\n".join(lines)
        else:
            content = f"I found no results for \"{query}\" in the knowledge base."

        return self._append("assistant", content, type="search")

    async def _calculation_reply(self, expression: str) -> ChatMessage:
        if self.knowledge_enabled:
            match = await self.knowledge_base.find_best_match(expression)
            if match and match.pair.category == "mathematics":
                return await self._knowledge_reply(match)

        await asyncio.sleep(self.response_delay)
        return self._append(
            "assistant",
            f"I couldn't solve \"{expression}\" from the knowledge base.",
            type="math",
        )

    async def _text_reply(self, text: str) -> ChatMessage:
        await asyncio.sleep(self.response_delay)
        return self._append("assistant", FALLBACK_TEMPLATE.format(text), type="text")

    def give_feedback(self, message: ChatMessage, feedback: Feedback) -> Optional[str]:
        """
        Report feedback on a knowledge reply.

        Returns:
            Acknowledgement text, or None when the message has no knowledge
            match or already received feedback
        """
        if message.knowledge_match is None or message.feedback_given:
            return None

        pair = message.knowledge_match.pair
        self.knowledge_base.learn_from_feedback(LearningData(
            question=pair.question,
            selected_answer=pair.answer,
            feedback=feedback,
        ))
        message.feedback_given = True
        message.choices = []
        return FEEDBACK_ACKNOWLEDGEMENTS[feedback]

    async def select_choice(self, message: ChatMessage, choice_id: str) -> Union[str, ChatMessage, None]:
        """Act on a choice: feedback choices report feedback, others are asked as a new message."""
        if choice_id in FEEDBACK_CHOICES:
            return self.give_feedback(message, FEEDBACK_CHOICES[choice_id])

        for choice in message.choices:
            if choice.id == choice_id:
                message.choices = []
                return await self.respond(choice.text)
        return None

    def last_reply(self) -> Optional[ChatMessage]:
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message
        return None

    def export_conversation(self) -> Dict[str, Any]:
        """Transcript and knowledge base statistics as a JSON-serializable dict."""
        stats = self.knowledge_base.get_stats()
        return {
            "conversation": {
                "id": self.conversation_id,
                "messages": [self._message_to_dict(message) for message in self.messages],
            },
            "exportedAt": datetime.now().isoformat(),
            "knowledgeBaseStats": {
                "totalPairs": stats.total_pairs,
                "categories": stats.categories,
                "mostUsed": [pair_to_dict(pair) for pair in stats.most_used],
                "averageScore": stats.average_score,
                "lastUpdate": stats.last_update.isoformat(),
            },
        }

    @staticmethod
    def _message_to_dict(message: ChatMessage) -> Dict[str, Any]:
        data = {
            "id": message.id,
            "role": message.role,
            "content": message.content,
            "timestamp": message.timestamp.isoformat(),
            "type": message.type,
        }
        if message.confidence is not None:
            data["confidence"] = message.confidence
        if message.knowledge_match is not None:
            data["knowledgeMatch"] = {
                "pairId": message.knowledge_match.pair.id,
                "score": message.knowledge_match.score,
                "confidence": message.knowledge_match.confidence,
                "matchType": message.knowledge_match.match_type.value,
            }
        if message.role == "assistant":
            data["feedbackGiven"] = message.feedback_given
        return data
