"""Composition of completion requests from persona, register and history."""

from collections.abc import Sequence
from dataclasses import dataclass

from chatbridge.conversation.classifier import Register
from chatbridge.model.message import ChatHistoryEntry, MessageDirection

PERSONA = (
    "You are chatting with your close friend {name}. You are a fun, friendly, "
    "and helpful person who speaks naturally like a real human friend."
)

REGISTER_INSTRUCTIONS: dict[Register, tuple[str, str]] = {
    Register.HINGLISH: (
        "Reply in natural Hinglish (mix of Hindi and English) like young Indians chat. "
        'Use words like "yaar", "bhai", "kya baat hai", "achha", "thik hai", etc.',
        "Keep it casual, short, and friendly. Use emojis occasionally. Sound like a close desi friend.",
    ),
    Register.ENGLISH: (
        "Reply in casual English like a close friend would. Use natural, conversational English.",
        "Keep it friendly, supportive, and natural. Use casual language and be relatable.",
    ),
    Register.HINDI: (
        "Reply in the same language/style as the user. Match their communication style.",
        "Be natural and friendly, adapting to their way of speaking.",
    ),
}

RULES = (
    "Keep responses under {max_words} words",
    "Be helpful and supportive",
    "Show genuine interest in their problems",
    "Give practical advice when asked",
    "Use humor when appropriate",
    "Remember you're talking to a friend, not a customer",
    "Don't be overly formal or robotic",
    "If you don't know something, admit it honestly",
    "Avoid repetitive responses",
)

# Role labels used when history is rendered as plain text
SPEAKER_LABELS = {MessageDirection.OUTBOUND: "You", MessageDirection.INBOUND: "Friend"}


@dataclass(frozen=True)
class PromptPayload:
    """A completion request.

    The history turns and the new message are kept as separate fields rather
    than being folded into the system text, so nothing is lost in composition.

    Attributes:
        system: Persona, register instructions and rules.
        turns: Prior conversation as (direction, text) pairs, oldest first.
        message: The new inbound text being replied to.
    """

    system: str
    turns: tuple[tuple[MessageDirection, str], ...]
    message: str

    def to_messages(self) -> list[tuple[str, str]]:
        """Render as LangChain (role, content) message tuples."""
        messages = [("system", self.system)]
        for direction, text in self.turns:
            messages.append(("ai" if direction is MessageDirection.OUTBOUND else "human", text))
        messages.append(("human", self.message))
        return messages

    def render(self) -> str:
        """Render as a single prompt string with role-labelled turns."""
        parts = [self.system]
        if self.turns:
            context = "\n".join(f"{SPEAKER_LABELS[direction]}: {text}" for direction, text in self.turns)
            parts.append(f"Previous conversation context:\n{context}")
        parts.append(f'User message: "{self.message}"')
        parts.append("Reply naturally as a close friend:")
        return "\n\n".join(parts)


class PromptBuilder:
    """Build deterministic completion requests."""

    def __init__(self, max_words: int = 50):
        self.max_words = max_words

    def build(
        self,
        text: str,
        history: Sequence[ChatHistoryEntry],
        contact_name: str,
        register: Register,
    ) -> PromptPayload:
        """Compose a request for a reply to ``text``.

        Args:
            text: New inbound message.
            history: Prior turns, oldest first.
            contact_name: How to address the contact.
            register: Detected register of ``text``.

        Returns:
            Immutable payload; equal inputs always give an equal payload.
        """
        return PromptPayload(
            system=self.system_prompt(contact_name, register),
            turns=tuple((entry.direction, entry.text) for entry in history),
            message=text,
        )

    def system_prompt(self, contact_name: str, register: Register) -> str:
        language, style = REGISTER_INSTRUCTIONS[register]
        rules = "\n".join(f"- {rule.format(max_words=self.max_words)}" for rule in RULES)
        return "\n\n".join(
            [
                PERSONA.format(name=contact_name),
                language,
                style,
                f"Important rules:\n{rules}",
            ]
        )
