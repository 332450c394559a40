"""AI completion service client and reply cleanup."""

import asyncio
import logging
import os
import re
from typing import Any, Protocol

from langchain_core.language_models.chat_models import BaseChatModel

from chatbridge.conversation.prompts import PromptPayload
from chatbridge.core.config.models import CompletionConfig
from chatbridge.core.errors import CompletionConfigError, CompletionError

logger = logging.getLogger(__name__)

PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

_ROLE_PREFIX = re.compile(r"^\s*(?:You|Me|AI|Bot|Assistant)\s*:\s*", re.IGNORECASE)
_FILLER_PREFIX = re.compile(
    r"^(?:(?:Sure|Okay|Alright|Well|So|Here)\b[,!.]?|Response:|Reply:)\s*", re.IGNORECASE
)
_SIGN_OFF = re.compile(
    r"\s*(?:Let me know|Hope this helps|Feel free to ask|Any other questions).*$",
    re.IGNORECASE | re.DOTALL,
)
_QUOTES = "\"'“”‘’"


class CompletionClient(Protocol):
    """Anything that can turn a prompt payload into reply text."""

    def ensure_configured(self) -> None:
        """Raise CompletionConfigError if the client can never succeed."""
        ...

    async def complete(self, payload: PromptPayload) -> str:
        """Return cleaned reply text or raise CompletionError."""
        ...


def clean_reply(text: str) -> str:
    """Strip model boilerplate from a generated reply.

    Removes role labels, leading filler words and trailing sign-offs, drops
    surrounding quotes and collapses repeated punctuation.
    """
    text = text.strip()
    text = _ROLE_PREFIX.sub("", text)
    text = text.strip().strip(_QUOTES).strip()
    text = _FILLER_PREFIX.sub("", text)
    text = _SIGN_OFF.sub("", text)
    text = re.sub(r"!{2,}", "!", text)
    text = re.sub(r"\?{2,}", "?", text)
    text = re.sub(r"\.{2,}", "...", text)
    return text.strip().strip(_QUOTES).strip()


class ChatModelCompletionClient:
    """CompletionClient backed by a LangChain chat model.

    The model is created lazily from a ``provider:model`` identifier.
    Supported providers: openai (optionally with an OpenAI-compatible
    ``base_url``) and anthropic.
    """

    def __init__(self, config: CompletionConfig):
        self.config = config
        self.provider, self.model_name = config.model.split(":", 1)
        self._model: BaseChatModel | None = None

    def ensure_configured(self) -> None:
        """Check provider support and credentials without calling the service.

        Raises:
            CompletionConfigError: If the provider is unsupported or no API key
                is configured or present in the environment.
        """
        env_var = PROVIDER_KEY_ENV.get(self.provider)
        if env_var is None:
            raise CompletionConfigError(
                f"Unsupported model provider: '{self.provider}'. "
                f"Supported: {', '.join(sorted(PROVIDER_KEY_ENV))}"
            )
        if not self.config.api_key and not os.environ.get(env_var):
            raise CompletionConfigError(
                f"No API key for provider '{self.provider}': set completion.api_key or {env_var}"
            )

    async def complete(self, payload: PromptPayload) -> str:
        """Request a reply and return it cleaned.

        Raises:
            CompletionError: On timeout, service failure or an empty reply.
        """
        model = self._get_model()
        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                response = await model.ainvoke(payload.to_messages())
        except TimeoutError as e:
            raise CompletionError(f"Completion timed out after {self.config.timeout_seconds}s") from e
        except Exception as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        text = clean_reply(_content_text(response.content))
        if not text:
            raise CompletionError("Completion returned an empty reply")
        return text

    def _get_model(self) -> BaseChatModel:
        if self._model is None:
            self.ensure_configured()
            self._model = self._create_model()
        return self._model

    def _create_model(self) -> BaseChatModel:
        """Instantiate the provider-specific chat model."""
        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "max_tokens": self.config.max_tokens,
        }
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key

        if self.provider == "openai":
            from langchain_openai import ChatOpenAI

            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            logger.info(f"Creating ChatOpenAI: model={self.model_name}, kwargs={list(kwargs.keys())}")
            return ChatOpenAI(**kwargs)

        if self.provider == "anthropic":
            from langchain_anthropic import ChatAnthropic

            logger.info(f"Creating ChatAnthropic: model={self.model_name}")
            return ChatAnthropic(**kwargs)

        raise CompletionConfigError(f"Unsupported model provider: '{self.provider}'")


def _content_text(content: Any) -> str:
    """Flatten message content that may be a list of content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content or "")
