"""
Request modifier for open-source reasoning models behind OpenAI-compatible
servers (vLLM, GPUStack, OpenRouter), which only return reasoning when asked.
"""

from __future__ import annotations

import dataclasses as _dataclasses

import thinkturn.api.types as api_types

PROVIDER = "opensource"

DEFAULT_REASONING_FIELD = "include_reasoning"

_MODEL_PREFIXES = ("deepseek", "qwen", "qwq", "glm")


@_dataclasses.dataclass
class OpenSourceRequestSettings:
    """How reasoning is requested from open-source model servers."""

    default_request_field: str = DEFAULT_REASONING_FIELD
    """Boolean field set to True to request reasoning."""

    model_field_overrides: dict[str, str] = _dataclasses.field(default_factory=dict)
    """Model ID prefix → field name, for servers that use another flag."""

    include_reasoning_format: bool = False
    """Also send ``reasoning_format="parsed"`` for DeepSeek models."""

    use_alternative_qwen_field: bool = False
    """Also send ``enable_thinking=True`` for Qwen/QwQ models."""


class OpenSourceRequestModifier:
    """Enables reasoning output for DeepSeek, Qwen, QwQ and GLM models."""

    def __init__(self, settings: OpenSourceRequestSettings | None = None) -> None:
        self._settings = settings or OpenSourceRequestSettings()

    @property
    def provider_family(self) -> str:
        return PROVIDER

    def supports_model(self, model_id: str | None) -> bool:
        if not model_id or not model_id.strip():
            return False
        lowered = model_id.lower()
        return (
            lowered.startswith(_MODEL_PREFIXES)
            or "r1" in lowered
            or "thinking" in lowered
        )

    def enable_reasoning(
        self,
        options: api_types.RequestOptions | None,
        model_id: str | None,
    ) -> api_types.RequestOptions:
        options = options if options is not None else api_types.RequestOptions(model_id=model_id)
        options.additional_properties[self._field_name(model_id)] = True

        lowered = (model_id or "").lower()
        if "deepseek" in lowered and self._settings.include_reasoning_format:
            options.additional_properties["reasoning_format"] = "parsed"
        if lowered.startswith(("qwen", "qwq")) and self._settings.use_alternative_qwen_field:
            options.additional_properties["enable_thinking"] = True

        return options

    def _field_name(self, model_id: str | None) -> str:
        if model_id and model_id.strip():
            lowered = model_id.lower()
            for prefix, field_name in self._settings.model_field_overrides.items():
                if lowered.startswith(prefix.lower()):
                    return field_name
        return self._settings.default_request_field
