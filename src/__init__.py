"""
Knowledge Chatbot

A chatbot that answers from an in-memory question/answer knowledge base,
matching free text with exact, fuzzy, keyword and partial strategies and a
confidence threshold adjusted by user feedback.
"""

__version__ = "1.0.0"
__author__ = "Knowledge Chatbot Team"
