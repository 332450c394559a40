"""Conversational register detection."""

import re
from enum import Enum


class Register(Enum):
    """Tone/language mix used to pick prompt phrasing and casual variants."""

    HINDI = "hindi"
    ENGLISH = "english"
    HINGLISH = "hinglish"


HINDI_WORDS = frozenset(
    {
        "hai", "hain", "kya", "kaise", "kahan", "kab", "kaun", "main", "mein",
        "tum", "aap", "yeh", "woh", "aur", "ki", "ke", "ka", "se", "mera",
        "tera", "uska", "bhai", "yaar", "dost",
    }
)

ENGLISH_WORDS = frozenset(
    {
        "the", "and", "you", "are", "what", "how", "where", "when", "who",
        "this", "that", "with", "have", "will", "can", "should", "would",
    }
)

# Discourse markers that flag a mixed register on their own
INFORMAL_MARKERS = re.compile(r"\b(bro|yaar|bhai|dude|man|kya|hai|hain|tum|main|mein)\b", re.IGNORECASE)

DEVANAGARI = re.compile("[\u0900-\u097F]")

_WORD = re.compile(r"[a-z']+")


class LanguageClassifier:
    """Classify message text into a Register.

    Pure and deterministic: the same text always yields the same register.
    """

    def classify(self, text: str) -> Register:
        if DEVANAGARI.search(text):
            return Register.HINDI

        words = _WORD.findall(text.lower())
        informal = sum(1 for word in words if word in HINDI_WORDS)
        formal = sum(1 for word in words if word in ENGLISH_WORDS)

        if informal > formal or INFORMAL_MARKERS.search(text):
            return Register.HINGLISH
        if formal > 0:
            return Register.ENGLISH
        return Register.HINGLISH
