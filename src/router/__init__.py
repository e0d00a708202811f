"""
Message routing logic for the chatbot.
"""

from .message_router import MessageRouter, MessageIntent, RoutingDecision

__all__ = ["MessageRouter", "MessageIntent", "RoutingDecision"]
