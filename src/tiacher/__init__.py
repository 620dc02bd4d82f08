"""
TIAcher: gamified AI tutoring chat.

Learners converse with an AI tutor whose answers follow their preferred
learning style, and earn XP and levels for every chat turn.
"""

__version__ = "0.1.0"
