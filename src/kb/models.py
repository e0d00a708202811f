"""
Data models for the Knowledge Base module.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class MatchType(Enum):
    """Strategy that produced the winning score of a match."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    KEYWORD = "keyword"
    PARTIAL = "partial"


class Feedback(Enum):
    """User verdict on a knowledge answer."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass
class KnowledgePair:
    """Represents a stored question/answer unit."""
    id: str
    question: str
    answer: str
    keywords: List[str]
    category: str
    added_at: datetime
    last_used: Optional[datetime] = None
    use_count: int = 0
    confidence: Optional[float] = None


@dataclass
class KnowledgeMatch:
    """Result of matching a query against the stored pairs."""
    pair: KnowledgePair
    score: float
    confidence: float
    match_type: MatchType


@dataclass
class LearningData:
    """A single feedback record."""
    question: str
    selected_answer: str
    feedback: Feedback
    rejected_answers: List[str] = field(default_factory=list)


@dataclass
class PairUpdate:
    """Named fields to change on an existing pair. None means unchanged."""
    question: Optional[str] = None
    answer: Optional[str] = None
    keywords: Optional[List[str]] = None
    category: Optional[str] = None
    confidence: Optional[float] = None

    @property
    def changes_text(self) -> bool:
        return self.question is not None or self.answer is not None


@dataclass
class KnowledgeBaseStats:
    """Snapshot of knowledge base statistics."""
    total_pairs: int
    categories: Dict[str, int]
    most_used: List[KnowledgePair]
    average_score: float
    last_update: datetime
