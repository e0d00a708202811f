"""
Knowledge Base implementation for question/answer matching.
"""

from .knowledge_base import KnowledgeBase
from .pair_store import PairStore
from .models import Feedback, KnowledgeMatch, KnowledgePair, LearningData, MatchType, PairUpdate

__all__ = [
    "KnowledgeBase",
    "PairStore",
    "Feedback",
    "KnowledgeMatch",
    "KnowledgePair",
    "LearningData",
    "MatchType",
    "PairUpdate",
]
