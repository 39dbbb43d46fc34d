"""
LetterLab Pro backend

REST API for drafting professional emails with a hosted model, plus user
accounts, saved conversation history and per-day usage counters.
"""

__version__ = "0.1.0"
