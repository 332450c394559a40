"""Casual word variants and personal address for generated replies."""

import random
import re

from chatbridge.conversation.classifier import Register

VARIATIONS: dict[Register, dict[str, tuple[str, ...]]] = {
    Register.HINGLISH: {
        "okay": ("ok", "okk", "theek hai", "achha"),
        "good": ("achha", "badhiya", "nice"),
        "yes": ("haan", "han", "yeah", "ha"),
        "no": ("nahi", "nah", "naa"),
        "what": ("kya", "kya baat", "what"),
        "how": ("kaise", "kese", "how"),
        "friend": ("yaar", "bro", "dost", "bhai"),
    },
    Register.ENGLISH: {
        "okay": ("ok", "alright", "cool"),
        "good": ("nice", "great", "awesome"),
        "yes": ("yeah", "yep", "sure"),
        "no": ("nah", "nope"),
        "friend": ("buddy", "dude", "bro"),
    },
}

PERSONAL_GREETINGS = ("yaar", "bro", "dude")


class Humanizer:
    """Randomly loosen a reply so it reads less machine-written.

    Args:
        probability: Chance that casual variants are applied to a reply.
        personal_touch_probability: Chance of prefixing the contact's name or
            a nickname.
        rng: Random source; inject a seeded one for deterministic tests.
    """

    def __init__(
        self,
        probability: float = 0.2,
        personal_touch_probability: float = 0.1,
        rng: random.Random | None = None,
    ):
        self.probability = probability
        self.personal_touch_probability = personal_touch_probability
        self._rng = rng or random.Random()

    def humanize(self, text: str, register: Register) -> str:
        """Swap whole words for register-specific casual variants."""
        variants = VARIATIONS.get(register)
        if not variants or self._rng.random() >= self.probability:
            return text

        for word, alternatives in variants.items():
            pattern = re.compile(rf"\b{word}\b", re.IGNORECASE)
            if pattern.search(text):
                replacement = self._rng.choice(alternatives)
                text = pattern.sub(replacement, text)
        return text

    def personalize(self, text: str, contact_name: str, default_name: str = "Friend") -> str:
        """Occasionally address the contact directly.

        Contacts known only by the default name are left alone.
        """
        if not contact_name or contact_name == default_name:
            return text
        if self._rng.random() >= self.personal_touch_probability:
            return text
        return f"{self._rng.choice([*PERSONAL_GREETINGS, contact_name])}, {text}"
