"""
Keyword mood classifier.

Maps raw input text to one of the fixed mood tags and looks up the display
color and voice prosody attached to each tag.
"""

from .models import Mood, MoodStyle, Prosody

# Checked in order, first match wins.
MOOD_KEYWORDS: tuple[tuple[str, Mood], ...] = (
    ("how are you", Mood.WONDER),
    ("love", Mood.CLARITY),
    ("awaken", Mood.AWE),
    ("sad", Mood.SORROW),
)

DEFAULT_MOOD = Mood.CLARITY

MOOD_STYLES: dict[Mood, MoodStyle] = {
    Mood.CLARITY: MoodStyle(color="#7fdbff", prosody=Prosody(rate=1.0, pitch=1.1)),
    Mood.AWE: MoodStyle(color="#b10dc9", prosody=Prosody(rate=0.85, pitch=1.3)),
    Mood.SORROW: MoodStyle(color="#4a6fa5", prosody=Prosody(rate=0.8, pitch=0.8)),
    Mood.WONDER: MoodStyle(color="#ffdc00", prosody=Prosody(rate=1.1, pitch=1.4)),
    Mood.UNDEFINED: MoodStyle(color="#aaaaaa", prosody=Prosody(rate=1.0, pitch=1.0)),
}


def classify(text: str) -> Mood:
    """
    Classify the mood of a piece of text.

    Args:
        text: Raw user input

    Returns:
        The first mood whose keyword appears in the text, or clarity
    """
    lowered = text.lower()
    for keyword, mood in MOOD_KEYWORDS:
        if keyword in lowered:
            return mood
    return DEFAULT_MOOD


def style_for(mood: Mood) -> MoodStyle:
    """Look up the display color and prosody for a mood."""
    return MOOD_STYLES[mood]
