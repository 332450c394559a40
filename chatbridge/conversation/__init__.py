"""Per-session conversation components.

Everything here is scoped to one session: the registry creates one set of
stores per session and discards them when the session is destroyed.
"""

from chatbridge.conversation.cache import ResponseCache, cache_key
from chatbridge.conversation.classifier import LanguageClassifier, Register
from chatbridge.conversation.completion import (
    ChatModelCompletionClient,
    CompletionClient,
    clean_reply,
)
from chatbridge.conversation.fallback import FallbackCategory, FallbackPolicy
from chatbridge.conversation.history import ChatHistoryStore
from chatbridge.conversation.humanizer import Humanizer
from chatbridge.conversation.prompts import PromptBuilder, PromptPayload
from chatbridge.conversation.rate_limiter import RateLimiter
from chatbridge.conversation.responder import Reply, Responder, ReplySource
from chatbridge.conversation.typing_simulator import TypingSimulator

__all__ = [
    "ChatHistoryStore",
    "ChatModelCompletionClient",
    "CompletionClient",
    "FallbackCategory",
    "FallbackPolicy",
    "Humanizer",
    "LanguageClassifier",
    "PromptBuilder",
    "PromptPayload",
    "RateLimiter",
    "Register",
    "Reply",
    "ReplySource",
    "Responder",
    "ResponseCache",
    "TypingSimulator",
    "cache_key",
    "clean_reply",
]
