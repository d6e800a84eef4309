"""Text-completion client with Anthropic/OpenAI provider selection and fallback."""

import logging
import os
from typing import Any, Literal

from anthropic import Anthropic
import openai

from edit_guard.agents.exceptions import AgentError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
PROVIDERS = ("auto", "anthropic", "openai")


class LLMClient:
    """Sends a single user prompt to the primary provider, optionally falling back."""

    def __init__(
        self,
        api_key: str | None = None,
        openai_api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
        allow_human_fallback: bool = False,
    ) -> None:
        """Create provider clients from explicit keys or the environment.

        api_key falls back to ANTHROPIC_API_KEY / CLAUDE_CODE_OAUTH_TOKEN and
        openai_api_key falls back to OPENAI_API_KEY.

        Raises:
            AgentError: If no key is found or the provider config is unusable.
        """
        self.model: str = model
        self.api_key: str | None = (
            api_key
            or os.getenv("ANTHROPIC_API_KEY")
            or os.getenv("CLAUDE_CODE_OAUTH_TOKEN")
        )
        self.openai_api_key: str | None = openai_api_key or os.getenv("OPENAI_API_KEY")
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None
        if self.api_key:
            self._anthropic_client = Anthropic(api_key=self.api_key)
        if self.openai_api_key:
            self._openai_client = openai.OpenAI(api_key=self.openai_api_key)

        if not (self._anthropic_client or self._openai_client):
            raise AgentError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameter, ANTHROPIC_API_KEY, CLAUDE_CODE_OAUTH_TOKEN, "
                "or OPENAI_API_KEY env vars."
            )

        self.llm_provider: Literal["auto", "anthropic", "openai"] = self._normalize_provider(
            llm_provider
        )
        self.llm_fallback_provider: str | None = (
            self._normalize_provider(llm_fallback_provider)
            if llm_fallback_provider
            else None
        )
        self.allow_fallback: bool = bool(allow_fallback)
        self.allow_human_fallback: bool = bool(allow_human_fallback)

        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise AgentError("No Anthropic API key found for --llm-provider=anthropic.")
        if self.llm_provider == "openai" and self._openai_client is None:
            raise AgentError("No OpenAI API key found for --llm-provider=openai.")
        if self.allow_fallback and self.llm_fallback_provider == "anthropic":
            if self._anthropic_client is None:
                raise AgentError(
                    "Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set."
                )
        if self.allow_fallback and self.llm_fallback_provider == "openai":
            if self._openai_client is None:
                raise AgentError(
                    "Fallback provider requested as openai but OPENAI_API_KEY is not set."
                )

    @staticmethod
    def _normalize_provider(value: str) -> Literal["auto", "anthropic", "openai"]:
        if value not in PROVIDERS:
            raise AgentError(f"Unsupported provider: {value}")
        return value

    def primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def provider_chain(self) -> list[str]:
        chain: list[str] = [self.primary_provider()]
        if self.allow_fallback and self.llm_fallback_provider:
            if self.llm_fallback_provider != chain[0]:
                chain.append(self.llm_fallback_provider)
        return chain

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return OPENAI_DEFAULT_MODEL
        return self.model

    def _prompt_fallback(self, error: Exception, fallback_provider: str) -> bool:
        if not self.allow_human_fallback:
            return False
        try:
            response = input(
                f"LLM call failed with {type(error).__name__}: {error} "
                f"\nUse fallback provider '{fallback_provider}'? [y/N]: "
            ).strip().lower()
            return response in {"y", "yes"}
        except EOFError:
            return False

    def _call(self, provider: str, prompt: str, max_tokens: int) -> str:
        messages = [{"role": "user", "content": prompt}]
        if provider == "anthropic":
            if self._anthropic_client is None:
                raise AgentError("Anthropic client unavailable")
            response = self._anthropic_client.messages.create(
                model=self._resolve_model("anthropic"),
                max_tokens=max_tokens,
                messages=messages,
            )
            return self._text_from_anthropic(response)

        if self._openai_client is None:
            raise AgentError("OpenAI client unavailable")
        response = self._openai_client.chat.completions.create(
            model=self._resolve_model("openai"),
            max_tokens=max_tokens,
            messages=messages,
        )
        text = response.choices[0].message.content
        if text is None:
            raise AgentError("OpenAI returned empty content")
        return text

    @staticmethod
    def _text_from_anthropic(response: Any) -> str:
        parts = [
            block.text
            for block in response.content
            if getattr(block, "type", "text") == "text"
        ]
        if not parts:
            raise AgentError("Anthropic returned no text content")
        return "".join(parts)

    def complete(self, prompt: str, max_tokens: int = 4096) -> str:
        """Return the text reply to prompt, walking the provider chain.

        Raises:
            AgentError: If every provider in the chain failed.
        """
        providers = self.provider_chain()
        last_error: Exception | None = None
        for index, provider in enumerate(providers):
            try:
                return self._call(provider, prompt, max_tokens)
            except Exception as error:
                last_error = error
                logger.warning("LLM call to %s failed: %s", provider, error)
                if index >= len(providers) - 1:
                    break
                if not self.allow_fallback and not self.allow_human_fallback:
                    break
                if self.allow_human_fallback and not self._prompt_fallback(
                    error, providers[index + 1]
                ):
                    break

        raise AgentError(f"Failed to call LLM: {last_error}") from last_error
