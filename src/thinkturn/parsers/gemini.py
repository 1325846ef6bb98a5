"""
Parser for Gemini thinking models.

Handles the native ``generateContent`` shape (``candidates[].content.parts``,
where thought parts carry ``thought`` text and a ``thoughtSignature``) and
the OpenAI-compatible endpoint, which surfaces the signature under
``choices[].message.extra_content.google.thought_signature``.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import thinkturn.api.types as api_types
import thinkturn.core.types as core_types
import thinkturn.parsers.base as base

_logger = _logging.getLogger(__name__)

PROVIDER = "gemini"

Part = dict[str, _typing.Any]


def _parts_from_candidates(candidates: list[_typing.Any]) -> list[Part]:
    parts: list[Part] = []
    for candidate in candidates:
        parts.extend(
            p for p in base.as_list(base.get_path(candidate, "content", "parts"))
            if isinstance(p, dict)
        )
    return parts


def _parts_from_choices(choices: list[_typing.Any]) -> list[Part]:
    parts: list[Part] = []
    for choice in choices:
        message = base.get_path(choice, "message")
        if not isinstance(message, dict):
            continue
        part: Part = {"text": message.get("content")}
        signature = base.get_path(message, "extra_content", "google", "thought_signature")
        if signature is not None:
            part["thought_signature"] = signature
        parts.append(part)
    return parts


def _parts_from_payload(payload: _typing.Any) -> list[Part]:
    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get("candidates"), list):
        return _parts_from_candidates(payload["candidates"])
    nested = base.get_path(payload, "content", "parts")
    if isinstance(nested, list):
        return [p for p in nested if isinstance(p, dict)]
    if isinstance(payload.get("parts"), list):
        return [p for p in payload["parts"] if isinstance(p, dict)]
    if isinstance(payload.get("choices"), list):
        return _parts_from_choices(payload["choices"])
    return []


def _content_parts(response: api_types.ChatResponse) -> list[Part]:
    parts = _parts_from_payload(base.load_payload(response.raw))
    if parts:
        return parts

    extra = response.additional_properties
    if isinstance(extra.get("candidates"), list):
        return _parts_from_candidates(extra["candidates"])
    if isinstance(extra.get("parts"), list):
        return [p for p in extra["parts"] if isinstance(p, dict)]
    return []


def _thought_text(part: Part) -> str | None:
    # Native API: {"thought": true, "text": "..."}; some SDKs put the text in "thought".
    thought = part.get("thought")
    if isinstance(thought, str):
        return thought or None
    if thought is True:
        return base.non_empty_str(part.get("text"))
    return None


def _thought_signature(parts: list[Part]) -> str | None:
    for part in parts:
        signature = base.non_empty_str(
            part.get("thoughtSignature") or part.get("thought_signature")
        )
        if signature:
            return signature
    return None


class GeminiReasoningParser:
    """Parser for Gemini thought parts and thought signatures."""

    @property
    def provider_family(self) -> str:
        return PROVIDER

    def try_parse(
        self, response: api_types.ChatResponse
    ) -> core_types.ThinkingContent | None:
        thoughts = [
            text for text in (_thought_text(p) for p in _content_parts(response)) if text
        ]
        if not thoughts:
            return None
        return core_types.ThinkingContent(
            text=base.join_blocks(thoughts),
            token_count=self._thinking_tokens(response),
            is_summarized=False,
        )

    def extract_state(
        self, response: api_types.ChatResponse
    ) -> core_types.ReasoningState | None:
        signature = _thought_signature(_content_parts(response))
        if signature is None:
            return None
        return core_types.ReasoningState(provider=PROVIDER, data=signature.encode("utf-8"))

    def has_thought_signature(self, response: api_types.ChatResponse) -> bool:
        """Check whether the response carries a thought signature."""
        return _thought_signature(_content_parts(response)) is not None

    @staticmethod
    def restore_thought_signature(state: core_types.ReasoningState) -> str | None:
        """Return the thought signature captured in ``state``."""
        return base.decode_state(state, PROVIDER)

    @staticmethod
    def _thinking_tokens(response: api_types.ChatResponse) -> int:
        payload = base.load_payload(response.raw)
        extra = response.additional_properties
        return base.first_int(
            base.get_path(payload, "usageMetadata", "thoughtsTokenCount"),
            base.get_path(payload, "usage", "completion_tokens_details", "reasoning_tokens"),
            extra.get("thoughtsTokenCount"),
            extra.get("thoughts_token_count"),
        )
