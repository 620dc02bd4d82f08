"""
Learning-style conditioning for greetings, prompts and fallback answers.
"""

from .styles import (
    DEFAULT_STYLE,
    LearningStyle,
    build_system_prompt,
    fallback_response,
    greeting_text,
    resolve_style,
    style_instructions,
)

__all__ = [
    "DEFAULT_STYLE",
    "LearningStyle",
    "build_system_prompt",
    "fallback_response",
    "greeting_text",
    "resolve_style",
    "style_instructions",
]
