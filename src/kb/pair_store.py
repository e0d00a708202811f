"""
Pair Store for holding question/answer pairs in memory.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .models import Feedback, KnowledgePair, LearningData, PairUpdate

logger = logging.getLogger(__name__)


def pair_to_dict(pair: KnowledgePair) -> Dict[str, Any]:
    """Serialize a pair to its export representation."""
    data = {
        "id": pair.id,
        "question": pair.question,
        "answer": pair.answer,
        "keywords": list(pair.keywords),
        "category": pair.category,
        "addedAt": pair.added_at.isoformat(),
        "useCount": pair.use_count,
    }
    if pair.last_used is not None:
        data["lastUsed"] = pair.last_used.isoformat()
    if pair.confidence is not None:
        data["confidence"] = pair.confidence
    return data


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into a naive local datetime.

    Accepts a trailing ``Z`` (as written by JavaScript's ``toISOString``);
    offset-aware values are converted to local time so they compare with
    ``datetime.now()``.
    """
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def pair_from_dict(data: Dict[str, Any]) -> KnowledgePair:
    """
    Build a pair from its export representation.

    Raises:
        KeyError, TypeError or ValueError when a field is missing or malformed.
    """
    keywords = data["keywords"]
    if not isinstance(keywords, list):
        raise TypeError(f"keywords must be a list, got {type(keywords).__name__}")

    last_used = data.get("lastUsed")
    confidence = data.get("confidence")
    return KnowledgePair(
        id=str(data["id"]),
        question=str(data["question"]),
        answer=str(data["answer"]),
        keywords=[str(keyword) for keyword in keywords],
        category=str(data.get("category", "general")),
        added_at=parse_timestamp(data["addedAt"]),
        last_used=parse_timestamp(last_used) if last_used else None,
        use_count=int(data.get("useCount", 0)),
        confidence=float(confidence) if confidence is not None else None,
    )


def learning_to_dict(record: LearningData) -> Dict[str, Any]:
    return {
        "question": record.question,
        "selectedAnswer": record.selected_answer,
        "rejectedAnswers": list(record.rejected_answers),
        "feedback": record.feedback.value,
    }


def learning_from_dict(data: Dict[str, Any]) -> LearningData:
    return LearningData(
        question=str(data["question"]),
        selected_answer=str(data["selectedAnswer"]),
        rejected_answers=[str(answer) for answer in data.get("rejectedAnswers", [])],
        feedback=Feedback(data["feedback"]),
    )


class PairStore:
    """In-memory storage for knowledge pairs keyed by id."""

    def __init__(self):
        self.pairs: Dict[str, KnowledgePair] = {}

    def __len__(self) -> int:
        return len(self.pairs)

    def __contains__(self, pair_id: str) -> bool:
        return pair_id in self.pairs

    def add_pair(self, pair: KnowledgePair):
        """Add a new pair to the store."""
        if pair.id in self.pairs:
            logger.warning(f"Pair with id {pair.id} already exists, replacing")
        self.pairs[pair.id] = pair

    def get_pair(self, pair_id: str) -> Optional[KnowledgePair]:
        """Get a pair by ID."""
        return self.pairs.get(pair_id)

    def get_all_pairs(self) -> List[KnowledgePair]:
        """Get all pairs in the store."""
        return list(self.pairs.values())

    def update_pair(self, pair_id: str, update: PairUpdate) -> Optional[KnowledgePair]:
        """Apply the non-empty fields of an update. Returns the pair, or None if absent."""
        pair = self.pairs.get(pair_id)
        if pair is None:
            return None

        if update.question is not None:
            pair.question = update.question.strip()
        if update.answer is not None:
            pair.answer = update.answer.strip()
        if update.keywords is not None:
            pair.keywords = list(update.keywords)
        if update.category is not None:
            pair.category = update.category
        if update.confidence is not None:
            pair.confidence = update.confidence

        return pair

    def delete_pair(self, pair_id: str) -> bool:
        """Delete a pair by ID."""
        if pair_id in self.pairs:
            del self.pairs[pair_id]
            return True
        return False

    def search_pairs(self, query: str) -> List[KnowledgePair]:
        """Pairs whose question, answer, keywords or category contain the query."""
        query_lower = query.lower()
        return [
            pair for pair in self.pairs.values()
            if query_lower in pair.question.lower()
            or query_lower in pair.answer.lower()
            or any(query_lower in keyword for keyword in pair.keywords)
            or query_lower in pair.category.lower()
        ]

    def get_pairs_by_category(self, category: str) -> List[KnowledgePair]:
        """Get all pairs in a category (case-insensitive)."""
        category_lower = category.lower()
        return [pair for pair in self.pairs.values() if pair.category.lower() == category_lower]

    def get_categories(self) -> List[str]:
        return sorted(set(pair.category for pair in self.pairs.values()))

    def replace_all(self, pairs: Iterable[KnowledgePair]):
        """Swap the whole content of the store."""
        self.pairs = {pair.id: pair for pair in pairs}
        logger.debug(f"Replaced store content with {len(self.pairs)} pairs")
