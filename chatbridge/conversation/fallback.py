"""Canned replies for when the completion service is unavailable."""

import random
import re
from enum import Enum


class FallbackCategory(Enum):
    GREETING = "greeting"
    QUESTION = "question"
    GRATITUDE = "gratitude"
    DEFAULT = "default"


FALLBACK_POOLS: dict[FallbackCategory, tuple[str, ...]] = {
    FallbackCategory.GREETING: (
        "Hey! Kya haal hai? 😊",
        "Arre yaar, kaisa chal raha hai?",
        "Hello bro! Sab badiya?",
        "Hi! What's up? 👋",
    ),
    FallbackCategory.QUESTION: (
        "Hmm, interesting question yaar!",
        "Good question! Let me think...",
        "Arre, ye toh sochna padega 🤔",
        "Wah bhai, deep question hai!",
    ),
    FallbackCategory.GRATITUDE: (
        "Arre yaar, mention not! 😄",
        "Koi baat nahi bro!",
        "Happy to help! 👍",
        "Always welcome dude!",
    ),
    FallbackCategory.DEFAULT: (
        "Haan bhai, main sun raha hun! 👂",
        "Tell me more yaar!",
        "Interesting! Aur bata...",
        "I'm listening! Go on... 😊",
    ),
}

GREETING_WORDS = frozenset({"hello", "hi", "hey", "namaste"})
QUESTION_WORDS = frozenset({"how", "what", "kya", "kaise"})
GRATITUDE_WORDS = frozenset({"thanks", "thank", "shukriya", "dhanyawad"})

_WORD = re.compile(r"[a-z']+")


class FallbackPolicy:
    """Pick a canned reply by keyword category.

    Categories are checked in priority order GREETING, QUESTION, GRATITUDE,
    and DEFAULT catches everything else. Never raises and never does I/O.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def categorize(self, text: str) -> FallbackCategory:
        lowered = text.lower()
        words = set(_WORD.findall(lowered))
        if words & GREETING_WORDS:
            return FallbackCategory.GREETING
        if "?" in lowered or words & QUESTION_WORDS:
            return FallbackCategory.QUESTION
        if words & GRATITUDE_WORDS:
            return FallbackCategory.GRATITUDE
        return FallbackCategory.DEFAULT

    def fallback(self, text: str) -> str:
        return self._rng.choice(FALLBACK_POOLS[self.categorize(text)])
