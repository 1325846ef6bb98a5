"""
Parser for Anthropic extended thinking responses.

Anthropic returns ``thinking`` content blocks (each with a cryptographic
``signature``), ``redacted_thinking`` blocks for filtered reasoning, and
``text`` blocks for the answer. The signature must be returned verbatim when
the thinking blocks are passed back on a later turn, so the state captured
here is the JSON of every thinking and redacted block.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import json as _json
import logging as _logging
import typing as _typing

import thinkturn.api.types as api_types
import thinkturn.core.types as core_types
import thinkturn.parsers.base as base

_logger = _logging.getLogger(__name__)

PROVIDER = "anthropic"


@_dataclasses.dataclass(frozen=True)
class ThinkingBlock:
    """A ``thinking`` content block."""

    thinking: str
    signature: str


@_dataclasses.dataclass(frozen=True)
class RedactedThinkingBlock:
    """A ``redacted_thinking`` content block (encrypted, not readable)."""

    data: str


@_dataclasses.dataclass(frozen=True)
class AnthropicThinkingState:
    """Blocks restored from a captured ReasoningState."""

    thinking_blocks: list[ThinkingBlock]
    redacted_blocks: list[RedactedThinkingBlock]


def _content_blocks(response: api_types.ChatResponse) -> list[dict[str, _typing.Any]]:
    payload = base.load_payload(response.raw)
    if isinstance(payload, dict):
        blocks = base.as_list(payload.get("content"))
        if blocks:
            return blocks
    elif isinstance(payload, list) and payload:
        return payload

    return base.as_list(response.additional_properties.get("content"))


def _parse_blocks(
    blocks: list[_typing.Any],
) -> tuple[list[ThinkingBlock], list[RedactedThinkingBlock]]:
    thinking: list[ThinkingBlock] = []
    redacted: list[RedactedThinkingBlock] = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        kind = block.get("type")
        if kind == "thinking":
            text = base.non_empty_str(block.get("thinking"))
            signature = base.non_empty_str(block.get("signature"))
            if text and signature:
                thinking.append(ThinkingBlock(thinking=text, signature=signature))
        elif kind == "redacted_thinking":
            data = base.non_empty_str(block.get("data"))
            if data:
                redacted.append(RedactedThinkingBlock(data=data))
    return thinking, redacted


class AnthropicReasoningParser:
    """Parser for Claude extended thinking."""

    @property
    def provider_family(self) -> str:
        return PROVIDER

    def try_parse(
        self, response: api_types.ChatResponse
    ) -> core_types.ThinkingContent | None:
        thinking, _ = _parse_blocks(_content_blocks(response))
        if not thinking:
            return None
        return core_types.ThinkingContent(
            text=base.join_blocks([block.thinking for block in thinking]),
            token_count=self._thinking_tokens(response),
            is_summarized=False,
        )

    def extract_state(
        self, response: api_types.ChatResponse
    ) -> core_types.ReasoningState | None:
        thinking, redacted = _parse_blocks(_content_blocks(response))
        if not thinking and not redacted:
            return None

        state = {
            "thinking_blocks": [_dataclasses.asdict(block) for block in thinking],
            "redacted_blocks": [_dataclasses.asdict(block) for block in redacted],
        }
        return core_types.ReasoningState(
            provider=PROVIDER,
            data=_json.dumps(state, ensure_ascii=False).encode("utf-8"),
        )

    def has_redacted_thinking(self, response: api_types.ChatResponse) -> bool:
        """Check whether the response contains any redacted thinking blocks."""
        _, redacted = _parse_blocks(_content_blocks(response))
        return bool(redacted)

    @staticmethod
    def restore_state(state: core_types.ReasoningState) -> AnthropicThinkingState | None:
        """
        Restore thinking blocks from a previously captured state.

        Returns:
            The blocks, or None if the state is not Anthropic's or is corrupt.
        """
        text = base.decode_state(state, PROVIDER)
        if text is None:
            return None
        try:
            data = _json.loads(text)
            return AnthropicThinkingState(
                thinking_blocks=[ThinkingBlock(**b) for b in data.get("thinking_blocks", [])],
                redacted_blocks=[
                    RedactedThinkingBlock(**b) for b in data.get("redacted_blocks", [])
                ],
            )
        except (*base.PAYLOAD_ERRORS, AttributeError):
            _logger.debug("Discarding corrupt Anthropic reasoning state")
            return None

    @staticmethod
    def _thinking_tokens(response: api_types.ChatResponse) -> int:
        payload = base.load_payload(response.raw)
        return base.first_int(
            base.get_path(payload, "usage", "thinking_tokens"),
            response.additional_properties.get("thinking_tokens"),
        )
