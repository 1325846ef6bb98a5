"""
Parser for OpenAI reasoning models (o-series, GPT-5) via the Responses API.

Reasoning arrives as an ``output`` item of type ``reasoning`` carrying an
optional human-readable ``summary`` and an ``encrypted_content`` blob. Only
the summary is readable; the encrypted content is the state that must be
sent back to continue the same chain of reasoning.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import thinkturn.api.types as api_types
import thinkturn.constants as constants
import thinkturn.core.types as core_types
import thinkturn.parsers.base as base

_logger = _logging.getLogger(__name__)

PROVIDER = "openai"


def _is_reasoning_item(value: _typing.Any) -> bool:
    return isinstance(value, dict) and str(value.get("type", "")).lower() == "reasoning"


def _reasoning_item(response: api_types.ChatResponse) -> dict[str, _typing.Any] | None:
    payload = base.load_payload(response.raw)
    if isinstance(payload, dict):
        for item in base.as_list(payload.get("output")):
            if _is_reasoning_item(item):
                return item
        if _is_reasoning_item(payload):
            return payload

    fallback = response.additional_properties.get("reasoning")
    return fallback if isinstance(fallback, dict) else None


def _summary_text(item: dict[str, _typing.Any]) -> str | None:
    texts = [
        entry["text"]
        for entry in base.as_list(item.get("summary"))
        if isinstance(entry, dict) and base.non_empty_str(entry.get("text"))
    ]
    return "\n".join(texts) if texts else None


class OpenAIReasoningParser:
    """Parser for OpenAI reasoning summaries and encrypted reasoning."""

    @property
    def provider_family(self) -> str:
        return PROVIDER

    def try_parse(
        self, response: api_types.ChatResponse
    ) -> core_types.ThinkingContent | None:
        item = _reasoning_item(response)
        if item is None:
            return None

        summary = _summary_text(item)
        encrypted = base.non_empty_str(item.get("encrypted_content"))
        if summary is None and encrypted is None:
            return None

        return core_types.ThinkingContent(
            text=summary if summary is not None else constants.ENCRYPTED_REASONING_PLACEHOLDER,
            token_count=self._reasoning_tokens(response),
            is_summarized=summary is not None,
        )

    def extract_state(
        self, response: api_types.ChatResponse
    ) -> core_types.ReasoningState | None:
        item = _reasoning_item(response)
        encrypted = base.non_empty_str(item.get("encrypted_content")) if item else None
        if encrypted is None:
            return None
        return core_types.ReasoningState(provider=PROVIDER, data=encrypted.encode("utf-8"))

    @staticmethod
    def restore_encrypted_content(state: core_types.ReasoningState) -> str | None:
        """Return the encrypted reasoning blob captured in ``state``."""
        return base.decode_state(state, PROVIDER)

    @staticmethod
    def _reasoning_tokens(response: api_types.ChatResponse) -> int:
        payload = base.load_payload(response.raw)
        return base.first_int(
            base.get_path(payload, "usage", "output_tokens_details", "reasoning_tokens"),
            response.additional_properties.get("reasoning_tokens"),
            response.usage.reasoning_tokens if response.usage else None,
        )
