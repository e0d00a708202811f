"""
Knowledge Base mapping free-text questions to stored answers.
"""

import calendar
import json
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .catalog import load_seed_catalog
from .models import (
    Feedback,
    KnowledgeBaseStats,
    KnowledgeMatch,
    KnowledgePair,
    LearningData,
    PairUpdate,
)
from .pair_store import (
    PairStore,
    learning_from_dict,
    learning_to_dict,
    pair_from_dict,
    pair_to_dict,
)
from .scoring import (
    SimilarityFunction,
    calculate_confidence,
    extract_keywords,
    fuzzy_score,
    rank_key,
    score_pair,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

MIN_CONFIDENCE_THRESHOLD = 0.4
MAX_CONFIDENCE_THRESHOLD = 0.9
NEGATIVE_FEEDBACK_STEP = 0.01
POSITIVE_FEEDBACK_STEP = 0.005
OPTIMIZE_STEP = 0.05
STALE_MAX_USE_COUNT = 2


def _months_before(moment: datetime, months: int) -> datetime:
    """Same day and time ``months`` calendar months earlier, clamped to month end."""
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class KnowledgeBase:
    """In-memory question/answer knowledge base with fuzzy matching."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        seed_pairs: Optional[Sequence[Dict[str, Any]]] = None,
        similarity: Optional[SimilarityFunction] = None,
    ):
        self.config = config or {}
        self.confidence_threshold = self.config.get("confidence_threshold", 0.6)
        self.fuzzy_threshold = self.config.get("fuzzy_threshold", 70)
        self.stale_after_months = self.config.get("stale_after_months", 6)
        self.similarity = similarity or fuzzy_score

        self.pair_store = PairStore()
        self.learning_data: List[LearningData] = []

        if seed_pairs is None:
            seed_pairs = load_seed_catalog(self.config.get("seed_catalog"))
        self._load_seed_pairs(seed_pairs)

    def _load_seed_pairs(self, seed_pairs: Sequence[Dict[str, Any]]):
        """Add seed entries through the regular add path."""
        for entry in seed_pairs:
            self.add_knowledge_pair(
                entry["question"],
                entry["answer"],
                entry.get("keywords"),
                entry.get("category", "general"),
            )
        logger.info(f"Knowledge base initialized with {len(self.pair_store)} pairs")

    @staticmethod
    def _generate_id() -> str:
        return f"kb_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

    @staticmethod
    def extract_keywords(text: str) -> List[str]:
        return extract_keywords(text)

    async def find_best_match(self, question: str) -> Optional[KnowledgeMatch]:
        """
        Find the stored pair that best matches a question.

        Every pair is scored; a pair is a candidate when its score reaches
        the fuzzy threshold and its derived confidence reaches the
        confidence threshold. The winning pair's usage counters are updated.

        Args:
            question: The user's utterance

        Returns:
            KnowledgeMatch for the best candidate, or None
        """
        if not question or not question.strip():
            return None

        query_keywords = extract_keywords(question)
        candidates: List[KnowledgeMatch] = []

        for pair in self.pair_store.get_all_pairs():
            score, match_type = score_pair(
                question, query_keywords, pair.question, pair.keywords, self.similarity
            )
            if score < self.fuzzy_threshold:
                continue

            confidence = calculate_confidence(score, match_type)
            if confidence >= self.confidence_threshold:
                candidates.append(KnowledgeMatch(
                    pair=pair,
                    score=score,
                    confidence=confidence,
                    match_type=match_type,
                ))

        if not candidates:
            logger.debug(f"No knowledge match for: {question}")
            return None

        candidates.sort(key=rank_key, reverse=True)
        best_match = candidates[0]

        best_match.pair.last_used = datetime.now()
        best_match.pair.use_count += 1

        logger.info(
            f"Matched '{question}' to pair {best_match.pair.id} "
            f"({best_match.match_type.value}, score {best_match.score:.1f}, "
            f"confidence {best_match.confidence:.2f})"
        )
        return best_match

    def add_knowledge_pair(
        self,
        question: str,
        answer: str,
        keywords: Optional[List[str]] = None,
        category: str = "general",
    ) -> str:
        """
        Add a question/answer pair.

        Keywords default to those extracted from the question; keywords
        extracted from the answer are always appended.

        Returns:
            The id of the new pair
        """
        question_keywords = list(keywords) if keywords is not None else extract_keywords(question)

        pair = KnowledgePair(
            id=self._generate_id(),
            question=question.strip(),
            answer=answer.strip(),
            keywords=question_keywords + extract_keywords(answer),
            category=category,
            added_at=datetime.now(),
        )
        self.pair_store.add_pair(pair)
        return pair.id

    def update_knowledge_pair(self, pair_id: str, update: PairUpdate) -> bool:
        """Apply an update; keywords are re-extracted when the question or answer changes."""
        pair = self.pair_store.update_pair(pair_id, update)
        if pair is None:
            logger.debug(f"Cannot update unknown pair {pair_id}")
            return False

        if update.changes_text:
            pair.keywords = extract_keywords(pair.question) + extract_keywords(pair.answer)
        return True

    def remove_knowledge_pair(self, pair_id: str) -> bool:
        return self.pair_store.delete_pair(pair_id)

    def get_knowledge_pair(self, pair_id: str) -> Optional[KnowledgePair]:
        return self.pair_store.get_pair(pair_id)

    def get_all_knowledge(self) -> List[KnowledgePair]:
        return self.pair_store.get_all_pairs()

    def learn_from_feedback(self, record: LearningData):
        """Record feedback and nudge the confidence threshold."""
        self.learning_data.append(record)

        if record.feedback is Feedback.NEGATIVE:
            self.confidence_threshold = min(
                self.confidence_threshold + NEGATIVE_FEEDBACK_STEP, MAX_CONFIDENCE_THRESHOLD
            )
        elif record.feedback is Feedback.POSITIVE:
            self.confidence_threshold = max(
                self.confidence_threshold - POSITIVE_FEEDBACK_STEP, MIN_CONFIDENCE_THRESHOLD
            )

        logger.debug(
            f"Feedback {record.feedback.value} recorded, "
            f"confidence threshold now {self.confidence_threshold:.3f}"
        )

    def update_knowledge_base(self):
        """Drop stale, rarely used pairs and re-tune the threshold from feedback."""
        cutoff = _months_before(datetime.now(), self.stale_after_months)

        stale_ids = [
            pair.id for pair in self.pair_store.get_all_pairs()
            if pair.use_count < STALE_MAX_USE_COUNT
            and pair.last_used is not None
            and pair.last_used < cutoff
        ]
        for pair_id in stale_ids:
            self.pair_store.delete_pair(pair_id)

        if stale_ids:
            logger.info(f"Removed {len(stale_ids)} stale pairs")

        self._optimize_from_learning_data()

    def _optimize_from_learning_data(self):
        positive = sum(1 for record in self.learning_data if record.feedback is Feedback.POSITIVE)
        negative = sum(1 for record in self.learning_data if record.feedback is Feedback.NEGATIVE)

        if positive > negative * 2:
            self.confidence_threshold = max(
                self.confidence_threshold - OPTIMIZE_STEP, MIN_CONFIDENCE_THRESHOLD
            )
        elif negative > positive:
            self.confidence_threshold = min(
                self.confidence_threshold + OPTIMIZE_STEP, MAX_CONFIDENCE_THRESHOLD
            )
        else:
            return

        logger.info(
            f"Optimized confidence threshold to {self.confidence_threshold:.3f} "
            f"({positive} positive / {negative} negative)"
        )

    def set_confidence_threshold(self, threshold: float):
        self.confidence_threshold = max(0.0, min(1.0, threshold))

    def set_fuzzy_threshold(self, threshold: float):
        self.fuzzy_threshold = max(0, min(100, threshold))

    def search_knowledge(self, query: str) -> List[KnowledgePair]:
        return self.pair_store.search_pairs(query)

    def get_knowledge_by_category(self, category: str) -> List[KnowledgePair]:
        return self.pair_store.get_pairs_by_category(category)

    def get_all_categories(self) -> List[str]:
        return self.pair_store.get_categories()

    def get_stats(self) -> KnowledgeBaseStats:
        """Get knowledge base statistics."""
        pairs = self.pair_store.get_all_pairs()

        categories: Dict[str, int] = {}
        for pair in pairs:
            categories[pair.category] = categories.get(pair.category, 0) + 1

        most_used = sorted(pairs, key=lambda pair: pair.use_count, reverse=True)[:5]
        average_score = float(np.mean([pair.confidence or 0.0 for pair in pairs])) if pairs else 0.0

        return KnowledgeBaseStats(
            total_pairs=len(pairs),
            categories=categories,
            most_used=most_used,
            average_score=average_score,
            last_update=datetime.now(),
        )

    def export_knowledge(self) -> str:
        """Serialize pairs, learning data and thresholds to a JSON string."""
        export_data = {
            "version": EXPORT_VERSION,
            "exportedAt": datetime.now().isoformat(),
            "knowledgeBase": [pair_to_dict(pair) for pair in self.pair_store.get_all_pairs()],
            "learningData": [learning_to_dict(record) for record in self.learning_data],
            "settings": {
                "confidenceThreshold": self.confidence_threshold,
                "fuzzyThreshold": self.fuzzy_threshold,
            },
        }
        return json.dumps(export_data, indent=2)

    def import_knowledge(self, data: str) -> bool:
        """
        Replace the whole store with an export.

        Nothing is applied unless the payload parses completely.

        Returns:
            True on success, False if the payload is malformed
        """
        try:
            import_data = json.loads(data)
            if not isinstance(import_data, dict):
                raise ValueError("Export must be a JSON object")

            raw_pairs = import_data.get("knowledgeBase")
            if not isinstance(raw_pairs, list):
                raise ValueError("Invalid knowledge base format")
            pairs = [pair_from_dict(raw_pair) for raw_pair in raw_pairs]

            learning_data = None
            if import_data.get("learningData") is not None:
                learning_data = [learning_from_dict(raw) for raw in import_data["learningData"]]

            settings = import_data.get("settings") or {}
            if not isinstance(settings, dict):
                raise ValueError("Invalid settings format")

        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to import knowledge base: {e}")
            return False

        self.pair_store.replace_all(pairs)
        if learning_data is not None:
            self.learning_data = learning_data

        confidence_threshold = settings.get("confidenceThreshold")
        if isinstance(confidence_threshold, (int, float)):
            self.set_confidence_threshold(confidence_threshold)
        fuzzy_threshold = settings.get("fuzzyThreshold")
        if isinstance(fuzzy_threshold, (int, float)):
            self.set_fuzzy_threshold(fuzzy_threshold)

        logger.info(f"Imported {len(pairs)} pairs and {len(self.learning_data)} feedback records")
        return True
