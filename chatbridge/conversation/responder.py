"""Reply generation: cache, completion and fallback composed together."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from chatbridge.conversation.cache import ResponseCache, cache_key
from chatbridge.conversation.classifier import LanguageClassifier, Register
from chatbridge.conversation.completion import CompletionClient
from chatbridge.conversation.fallback import FallbackPolicy
from chatbridge.conversation.humanizer import Humanizer
from chatbridge.conversation.prompts import PromptBuilder
from chatbridge.model.message import ChatHistoryEntry

logger = logging.getLogger(__name__)


class ReplySource(Enum):
    CACHE = "cache"
    COMPLETION = "completion"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Reply:
    """Text to send back and where it came from."""

    text: str
    source: ReplySource
    register: Register


class Responder:
    """Produce a reply for one inbound message.

    Order of operations: cache lookup, register detection, prompt
    composition, completion, humanization, cache store. Any completion
    failure is replaced by a canned fallback, so ``respond`` never raises
    for service problems. Cache problems count as misses.
    """

    def __init__(
        self,
        completion: CompletionClient,
        cache: ResponseCache | None = None,
        classifier: LanguageClassifier | None = None,
        prompt_builder: PromptBuilder | None = None,
        fallback: FallbackPolicy | None = None,
        humanizer: Humanizer | None = None,
        default_contact_name: str = "Friend",
    ):
        self.completion = completion
        self.cache = cache
        self.classifier = classifier or LanguageClassifier()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.fallback = fallback or FallbackPolicy()
        self.humanizer = humanizer or Humanizer()
        self.default_contact_name = default_contact_name

    async def respond(
        self,
        text: str,
        history: Sequence[ChatHistoryEntry],
        contact_name: str | None = None,
    ) -> Reply:
        """Generate a reply to ``text`` given prior turns with the contact.

        Args:
            text: Inbound message text.
            history: Recent turns, oldest first, not including ``text``.
            contact_name: Display name of the contact, if known.

        Returns:
            Reply with its source.
        """
        name = contact_name or self.default_contact_name
        register = self.classifier.classify(text)
        key = cache_key(text)

        cached = self._cache_get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            reply_text = self.humanizer.personalize(cached, name, self.default_contact_name)
            return Reply(text=reply_text, source=ReplySource.CACHE, register=register)

        payload = self.prompt_builder.build(text, history, name, register)
        try:
            generated = await self.completion.complete(payload)
            if not generated or not generated.strip():
                raise ValueError("empty completion")
        except Exception as e:
            logger.warning(f"Completion failed, using fallback reply: {e}")
            return Reply(text=self.fallback.fallback(text), source=ReplySource.FALLBACK, register=register)

        generated = self.humanizer.humanize(generated.strip(), register)
        self._cache_set(key, generated)
        reply_text = self.humanizer.personalize(generated, name, self.default_contact_name)
        return Reply(text=reply_text, source=ReplySource.COMPLETION, register=register)

    def _cache_get(self, key: str) -> str | None:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning(f"Response cache lookup failed, treating as miss: {e}")
            return None

    def _cache_set(self, key: str, value: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, value)
        except Exception as e:
            logger.warning(f"Response cache store failed: {e}")
