"""
Parser for open-source reasoning models (DeepSeek-R1, Qwen/QwQ, GLM) served
through OpenAI-compatible backends such as vLLM.

Reasoning is taken from a structured ``reasoning_content`` (DeepSeek) or
``reasoning`` (vLLM) field when the backend separates it, otherwise from
``<think>...</think>`` tags embedded in the answer text. These models have no
encrypted state; the captured state is the reasoning text itself.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import re as _re
import typing as _typing

import thinkturn.api.types as api_types
import thinkturn.core.types as core_types
import thinkturn.parsers.base as base

_logger = _logging.getLogger(__name__)

PROVIDER = "opensource"

_THINK_TAGS = _re.compile(r"<think>.*?</think>", _re.DOTALL)

_REASONING_FIELDS = ("reasoning_content", "reasoning")


@_dataclasses.dataclass(frozen=True)
class ThinkTagConfig:
    """Delimiters of inline reasoning."""

    start_token: str = "<think>"
    end_token: str = "</think>"


def strip_think_tags(text: str) -> str:
    """Remove ``<think>...</think>`` sections and trim the remainder."""
    if not text:
        return text
    return _THINK_TAGS.sub("", text).strip()


def _reasoning_field(container: _typing.Any) -> str | None:
    if not isinstance(container, dict):
        return None
    for field in _REASONING_FIELDS:
        value = base.non_empty_str(container.get(field))
        if value:
            return value
    return None


class OpenSourceReasoningParser:
    """Parser for reasoning fields and inline think tags."""

    def __init__(self, config: ThinkTagConfig | None = None) -> None:
        self._config = config or ThinkTagConfig()

    @property
    def provider_family(self) -> str:
        return PROVIDER

    def try_parse(
        self, response: api_types.ChatResponse
    ) -> core_types.ThinkingContent | None:
        reasoning = self._reasoning(response)
        if not reasoning:
            return None
        return core_types.ThinkingContent(
            text=reasoning,
            token_count=self._reasoning_tokens(response),
            is_summarized=False,
        )

    def extract_state(
        self, response: api_types.ChatResponse
    ) -> core_types.ReasoningState | None:
        reasoning = self._reasoning(response)
        if not reasoning:
            return None
        return core_types.ReasoningState(provider=PROVIDER, data=reasoning.encode("utf-8"))

    def has_reasoning_content(self, response: api_types.ChatResponse) -> bool:
        return bool(self._reasoning(response))

    @staticmethod
    def restore_reasoning_content(state: core_types.ReasoningState) -> str | None:
        """Return the reasoning text captured in ``state``."""
        return base.decode_state(state, PROVIDER)

    def extract_think_tag_content(self, text: str | None) -> str | None:
        """
        Extract the text between the configured start and end tokens.

        A missing end token (generation cut off while thinking) yields
        everything after the start token.
        """
        if not text:
            return None
        start = text.find(self._config.start_token)
        if start < 0:
            return None
        content_start = start + len(self._config.start_token)
        end = text.find(self._config.end_token, content_start)
        content = text[content_start:] if end < 0 else text[content_start:end]
        return content.strip() or None

    def _reasoning(self, response: api_types.ChatResponse) -> str | None:
        payload = base.load_payload(response.raw)
        return (
            self._structured_reasoning(payload)
            or _reasoning_field(response.additional_properties)
            or self.extract_think_tag_content(response.text)
            or self.extract_think_tag_content(self._payload_text(payload))
        )

    @staticmethod
    def _structured_reasoning(payload: _typing.Any) -> str | None:
        if not isinstance(payload, dict):
            return None
        for choice in base.as_list(payload.get("choices")):
            if not isinstance(choice, dict):
                continue
            found = _reasoning_field(choice.get("message")) or _reasoning_field(
                choice.get("delta")
            )
            if found:
                return found
        return _reasoning_field(payload)

    @staticmethod
    def _payload_text(payload: _typing.Any) -> str | None:
        for choice in base.as_list(base.get_path(payload, "choices")):
            content = base.get_path(choice, "message", "content")
            if isinstance(content, str):
                return content
        return base.non_empty_str(base.get_path(payload, "content"))

    @staticmethod
    def _reasoning_tokens(response: api_types.ChatResponse) -> int:
        payload = base.load_payload(response.raw)
        return base.first_int(
            base.get_path(payload, "usage", "completion_tokens_details", "reasoning_tokens"),
            base.get_path(payload, "usage", "reasoning_tokens"),
            response.additional_properties.get("reasoning_tokens"),
        )
