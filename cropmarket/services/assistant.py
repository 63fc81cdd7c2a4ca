"""
Farming assistant chat backed by the Anthropic Messages API.

The provider is treated as an opaque request/response collaborator. Any
provider trouble (missing key, network failure, open circuit breaker)
degrades to fixed general guidance instead of an error, flagged with
``fallback=True``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import anthropic

from cropmarket.circuit_breaker import CircuitBreaker, get_assistant_breaker
from cropmarket.config import Settings, get_settings
from cropmarket.exceptions import CircuitBreakerOpenError, MissingAPIKeyError, ValidationError
from cropmarket.logging_config import log_event
from cropmarket.security.validators import sanitize_assistant_reply

logger = logging.getLogger(__name__)

GREETING = "Hello! I am your farming assistant. How can I help you today?"

EMPTY_REPLY = "I'm sorry, I couldn't process your request. Please try again."

FALLBACK_REPLY = (
    "I'm currently having trouble connecting to my knowledge base. Here's some general guidance: "
    "For crop issues, check for pests, diseases, and water/nutrient levels. For market questions, "
    "consider local demand and seasonal pricing trends. Please try your specific question again later."
)

SYSTEM_PROMPT = """You are CropMarket-Mate's farming assistant, helping farmers with practical advice.
You can help with:
- Crop cultivation techniques, pest management and disease identification
- Seasonal planting and harvesting guidance
- Market trends and pricing for agricultural produce
- Sustainable and organic farming practices
- Optimizing crop quality and yield

Keep answers concise and practical for small to medium scale farmers.
If a question is outside your expertise, say so and suggest consulting local agricultural experts.
When answering in Hindi or another local language, keep the wording simple and clear."""

MAX_HISTORY_MESSAGES = 10

# Provider failures that degrade to the fallback reply rather than a 5xx.
_PROVIDER_ERRORS = (anthropic.APIError, TimeoutError, ConnectionError, OSError)


@dataclass
class AssistantReply:
    reply: str
    fallback: bool = False
    model: str | None = None
    usage: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"reply": self.reply, "fallback": self.fallback, "model": self.model, "usage": self.usage}


def extract_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    content = getattr(response, "content", None) or []
    return "".join(getattr(block, "text", "") or "" for block in content)


def extract_usage(response: Any) -> dict[str, int]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return {}
    out = {}
    for key in ("input_tokens", "output_tokens"):
        value = getattr(usage, key, None)
        if isinstance(value, int):
            out[key] = value
    return out


def build_messages(message: str, history: Iterable[Mapping[str, str]] | None = None) -> list[dict[str, str]]:
    """
    Turn prior chat turns plus the new message into Messages API input.

    Only ``user``/``assistant`` turns are kept, the conversation must open
    with a user turn (so the canned greeting is dropped), and only the last
    ``MAX_HISTORY_MESSAGES`` turns are sent.
    """
    turns = [
        {"role": turn["role"], "content": str(turn["content"])}
        for turn in (history or [])
        if turn.get("role") in ("user", "assistant") and str(turn.get("content") or "").strip()
    ]
    turns = turns[-MAX_HISTORY_MESSAGES:]
    while turns and turns[0]["role"] != "user":
        turns.pop(0)
    turns.append({"role": "user", "content": message})
    return turns


class FarmerAssistant:
    """
    Usage:
        assistant = FarmerAssistant()
        result = assistant.reply("When should I sow wheat in Punjab?")
        print(result.reply)
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        client: Any = None,
        breaker: CircuitBreaker | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._api_key = api_key
        self._client = client
        self._breaker = breaker

    @property
    def model(self) -> str:
        return self.settings.anthropic_model

    @property
    def breaker(self) -> CircuitBreaker:
        if self._breaker is None:
            self._breaker = get_assistant_breaker()
        return self._breaker

    @property
    def client(self) -> Any:
        """Lazy-load the Anthropic client."""
        if self._client is None:
            api_key = self._api_key or self.settings.anthropic_api_key
            if not api_key:
                raise MissingAPIKeyError("anthropic", env_var="ANTHROPIC_API_KEY")
            self._client = anthropic.Anthropic(api_key=api_key)
        return self._client

    def reply(self, message: str, history: Iterable[Mapping[str, str]] | None = None) -> AssistantReply:
        """
        Answer a farmer's question.

        Raises:
            ValidationError: Empty or overlong message.
        """
        message = (message or "").strip()
        if not message:
            raise ValidationError("is required", field="message")
        if len(message) > self.settings.assistant_max_message_chars:
            raise ValidationError(
                f"exceeds maximum length of {self.settings.assistant_max_message_chars} characters",
                field="message",
            )

        if not self.settings.enable_assistant:
            return self._fallback("disabled")

        try:
            response = self.breaker.call(
                self.client.messages.create,
                model=self.model,
                max_tokens=self.settings.assistant_max_tokens,
                temperature=self.settings.assistant_temperature,
                system=SYSTEM_PROMPT,
                messages=build_messages(message, history),
                timeout=self.settings.llm_timeout_seconds,
            )
        except MissingAPIKeyError:
            return self._fallback("missing_api_key")
        except CircuitBreakerOpenError:
            return self._fallback("circuit_open")
        except _PROVIDER_ERRORS as e:
            logger.warning("Assistant provider call failed: %s", e, extra={"exception_type": type(e).__name__})
            return self._fallback("provider_error")

        usage = extract_usage(response)
        text = sanitize_assistant_reply(extract_text(response))
        log_event("assistant_reply", model=self.model, fallback=False, **usage)
        return AssistantReply(reply=text or EMPTY_REPLY, fallback=False, model=self.model, usage=usage)

    def _fallback(self, reason: str) -> AssistantReply:
        log_event("assistant_fallback", level="warning", reason=reason)
        return AssistantReply(reply=FALLBACK_REPLY, fallback=True, model=None)
