"""
Scoring strategies used to match a user utterance against stored pairs.
"""

import logging
import math
import re
from typing import Callable, List, Sequence, Tuple

from rapidfuzz import fuzz, utils
from rapidfuzz.distance import Levenshtein

from .models import KnowledgeMatch, MatchType

logger = logging.getLogger(__name__)

STOPWORDS = frozenset([
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"
])

PARTIAL_CONTAINMENT_SCORE = 85.0
PARTIAL_WORD_WEIGHT = 70.0
RANK_BUCKET = 5

CONFIDENCE_FACTORS = {
    MatchType.EXACT: 1.2,
    MatchType.FUZZY: 0.9,
    MatchType.KEYWORD: 0.8,
    MatchType.PARTIAL: 0.85,
}

_NON_WORD = re.compile(r"[^\w\s]")

# (query, target) -> 0..100
SimilarityFunction = Callable[[str, str], float]


def extract_keywords(text: str) -> List[str]:
    """
    Tokenize text into keywords.

    Lowercases, replaces punctuation with spaces, splits on whitespace and
    drops tokens of two characters or fewer as well as stopwords. Order and
    duplicates are preserved.
    """
    words = _NON_WORD.sub(" ", text.lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOPWORDS]


def levenshtein_similarity(query: str, target: str) -> float:
    """Normalized Levenshtein similarity: 100 * (max_len - distance) / max_len."""
    return Levenshtein.normalized_similarity(query.lower(), target.lower()) * 100


def fuzzy_score(query: str, target: str) -> float:
    """
    Case-insensitive edit-distance ratio between two strings (0-100).

    Both strings are normalized first (lowercased, non-alphanumerics replaced
    by spaces, trimmed) and the ratio is rounded half-up to a whole number.
    Strings that normalize to nothing score 0.
    """
    query_processed = utils.default_process(query)
    target_processed = utils.default_process(target)
    if not query_processed or not target_processed:
        return 0.0
    return float(math.floor(fuzz.ratio(query_processed, target_processed) + 0.5))


def _safe_similarity(similarity: SimilarityFunction, query: str, target: str) -> float:
    try:
        return float(similarity(query, target))
    except Exception as e:
        logger.warning(f"Fuzzy similarity failed: {e}, using Levenshtein similarity")
        return levenshtein_similarity(query, target)


def keyword_score(query_keywords: Sequence[str], pair_keywords: Sequence[str]) -> float:
    """Percentage of query keywords that overlap (substring either way) a pair keyword."""
    if not query_keywords or not pair_keywords:
        return 0.0

    matches = 0
    for query_keyword in query_keywords:
        for pair_keyword in pair_keywords:
            if query_keyword in pair_keyword or pair_keyword in query_keyword:
                matches += 1
                break

    return matches / len(query_keywords) * 100


def partial_score(query: str, target: str) -> float:
    """Score containment of one string in the other, or word-level overlap."""
    query_lower = query.lower()
    target_lower = target.lower()

    if target_lower in query_lower or query_lower in target_lower:
        return PARTIAL_CONTAINMENT_SCORE

    query_words = query_lower.split()
    target_words = target_lower.split()
    if not query_words:
        return 0.0

    matches = 0
    for query_word in query_words:
        for target_word in target_words:
            if query_word == target_word or target_word in query_word or query_word in target_word:
                matches += 1
                break

    return matches / len(query_words) * PARTIAL_WORD_WEIGHT


def calculate_confidence(score: float, match_type: MatchType) -> float:
    """Derive a 0-1 confidence from a raw 0-100 score and the winning strategy."""
    confidence = score / 100 * CONFIDENCE_FACTORS[match_type]
    if match_type is MatchType.EXACT:
        confidence = min(confidence, 1.0)
    return max(0.0, min(1.0, confidence))


def score_pair(
    query: str,
    query_keywords: Sequence[str],
    question: str,
    pair_keywords: Sequence[str],
    similarity: SimilarityFunction = fuzzy_score,
) -> Tuple[float, MatchType]:
    """
    Best score and strategy for a single pair.

    An exact (case-insensitive) question match short-circuits to 100.
    Otherwise fuzzy, keyword and partial scores are computed and the
    highest wins; on ties the earlier strategy in that order is kept.
    """
    if query.lower() == question.lower():
        return 100.0, MatchType.EXACT

    best_score = 0.0
    best_type = MatchType.FUZZY
    for match_type, score in (
        (MatchType.FUZZY, _safe_similarity(similarity, query, question)),
        (MatchType.KEYWORD, keyword_score(query_keywords, pair_keywords)),
        (MatchType.PARTIAL, partial_score(query, question)),
    ):
        if score > best_score:
            best_score = score
            best_type = match_type

    return best_score, best_type


def rank_key(match: KnowledgeMatch) -> Tuple[int, float, float]:
    """
    Sort key for candidates (use with reverse=True).

    Scores are bucketed to the nearest multiple of five so that near-equal
    scores are decided by confidence, then by raw score.
    """
    bucket = int(math.floor(match.score / RANK_BUCKET + 0.5)) * RANK_BUCKET
    return bucket, match.confidence, match.score
