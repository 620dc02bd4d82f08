"""
Learning styles and the texts conditioned on them.

The persisted ``learning_style`` is an open string. Known values map to a
``LearningStyle``; anything else (including "Mixed") gets the generic
detailed-explanation instructions instead of being rejected.
"""

from enum import StrEnum


class LearningStyle(StrEnum):
    """Learning styles offered in the preferences screen."""

    EXPLANATORY_TEXTS = "Explanatory texts"
    EXERCISES = "Exercises"
    QUIZZES = "Quizzes"
    VIDEOS = "Videos"
    MIXED = "Mixed"


DEFAULT_STYLE = LearningStyle.EXPLANATORY_TEXTS

STYLE_DESCRIPTIONS = {
    LearningStyle.EXPLANATORY_TEXTS: "Learn through detailed explanations and theory",
    LearningStyle.EXERCISES: "Practice with exercises and worked problems",
    LearningStyle.QUIZZES: "Test your knowledge with questions and answers",
    LearningStyle.VIDEOS: "Learn with visual content and video lessons",
    LearningStyle.MIXED: "Combine different kinds of content",
}

GENERIC_INSTRUCTIONS = (
    "Give detailed, clear and well-structured explanations, with practical examples."
)

STYLE_INSTRUCTIONS = {
    LearningStyle.EXPLANATORY_TEXTS: (
        "Give detailed, clear and well-structured explanations, with practical examples."
    ),
    LearningStyle.EXERCISES: (
        "Create practical exercises, problems to solve and hands-on activities."
    ),
    LearningStyle.QUIZZES: (
        "Ask questions, build multiple-choice tests and interactive assessments."
    ),
    LearningStyle.VIDEOS: (
        "Describe concepts visually, suggest visual resources and explain "
        "as if writing a video script."
    ),
}

SYSTEM_PROMPT_TEMPLATE = """You are TIAcher, a friendly, personalized AI teacher who adapts every answer to the student's preferred learning style.

Current learning style: {style}

How to answer for this style:
{instructions}

Always keep a friendly, encouraging and educational tone. Use emojis where appropriate and format your answers in markdown."""

GREETING_TEMPLATE = (
    "Hi! I'm TIAcher, your personalized AI teacher! 🎓\n\n"
    "I see you prefer learning through **{style}**. "
    "I'll adapt all my answers to that style!\n\n"
    "What would you like to learn today?"
)

FALLBACK_TEMPLATE = (
    "Sorry, I had a problem processing your question. "
    "Here is an answer based on the {style} style:\n\n"
    'For "{message}", I can explain that...'
)


def resolve_style(value: str | None) -> LearningStyle | None:
    """Map a stored style string to a known style, ignoring case and padding."""
    if not value:
        return None
    needle = value.strip().casefold()
    for style in LearningStyle:
        if style.value.casefold() == needle or style.name.casefold() == needle:
            return style
    return None


def style_instructions(value: str | None) -> str:
    """Style-specific answering instructions; generic for Mixed and unknown styles."""
    style = resolve_style(value)
    return STYLE_INSTRUCTIONS.get(style, GENERIC_INSTRUCTIONS)


def build_system_prompt(learning_style: str | None) -> str:
    """System prompt sent upstream with every completion request."""
    return SYSTEM_PROMPT_TEMPLATE.format(
        style=learning_style or DEFAULT_STYLE.value,
        instructions=style_instructions(learning_style),
    )


def greeting_text(learning_style: str | None) -> str:
    """Greeting shown at the top of a freshly created conversation."""
    return GREETING_TEMPLATE.format(style=learning_style or DEFAULT_STYLE.value)


def fallback_response(message: str, learning_style: str | None) -> str:
    """Placeholder answer used when the completion gateway is unavailable."""
    return FALLBACK_TEMPLATE.format(
        style=learning_style or DEFAULT_STYLE.value,
        message=message,
    )
