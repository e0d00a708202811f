"""
Data models for the Chat module.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..kb.models import KnowledgeMatch


@dataclass
class Choice:
    """A follow-up option offered with a reply."""
    id: str
    text: str
    confidence: int


@dataclass
class ChatMessage:
    """A single message of the conversation."""
    id: str
    role: str
    content: str
    timestamp: datetime
    type: str = "text"
    confidence: Optional[float] = None
    knowledge_match: Optional[KnowledgeMatch] = None
    choices: List[Choice] = field(default_factory=list)
    feedback_given: bool = False
