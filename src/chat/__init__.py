"""
Chat assistant built on the knowledge base.
"""

from .assistant import ChatAssistant
from .models import ChatMessage, Choice

__all__ = ["ChatAssistant", "ChatMessage", "Choice"]
