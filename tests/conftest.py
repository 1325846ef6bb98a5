"""
Shared pytest fixtures for thinkturn tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import asyncio as _asyncio
import os as _os
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import thinkturn.api.types as api_types
import thinkturn.config as config
import thinkturn.tokenization as tokenization

ENV_PREFIX = "THINKTURN_"


# =============================================================================
# Environment Isolation Fixtures
# =============================================================================


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """
    Return environment dict with THINKTURN_* keys removed.

    Use with mock.patch.dict to isolate tests from the actual environment.
    """
    return {k: v for k, v in _os.environ.items() if not k.startswith(ENV_PREFIX)}


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]):
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def clean_settings(isolated_env, tmp_path, monkeypatch) -> config.Settings:
    """
    Settings instance isolated from environment, .env and YAML files.

    This fixture ensures tests get predictable default settings.
    """
    monkeypatch.chdir(tmp_path)
    with isolated_env:
        return config.Settings.construct_without_dotenv()


# =============================================================================
# Responses and Send Functions
# =============================================================================


def make_response(
    text: str,
    finish_reason: api_types.FinishReason | str | None = api_types.FinishReason.STOP,
    *,
    output_tokens: int | None = None,
    reasoning_tokens: int | None = None,
    model_id: str | None = None,
    raw: _typing.Any = None,
    **additional_properties: _typing.Any,
) -> api_types.ChatResponse:
    """Build a ChatResponse with optional usage."""
    usage = None
    if output_tokens is not None or reasoning_tokens is not None:
        usage = api_types.Usage(
            input_tokens=10,
            output_tokens=output_tokens,
            details=(
                api_types.UsageDetails(reasoning_tokens=reasoning_tokens)
                if reasoning_tokens is not None
                else None
            ),
        )
    return api_types.ChatResponse(
        text=text,
        finish_reason=finish_reason,
        usage=usage,
        model_id=model_id,
        raw=raw,
        additional_properties=additional_properties,
    )


class ScriptedSender:
    """
    Send function that returns a script of responses in order.

    Records every message list it was called with. When the script runs
    out, the last response is repeated.
    """

    def __init__(self, responses: list[api_types.ChatResponse]) -> None:
        if not responses:
            raise ValueError("script must contain at least one response")
        self._responses = responses
        self.calls: list[list[api_types.Message]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def __call__(self, messages: list[api_types.Message]) -> api_types.ChatResponse:
        self.calls.append(list(messages))
        index = min(len(self.calls) - 1, len(self._responses) - 1)
        await _asyncio.sleep(0)
        return self._responses[index]


class CountingSender:
    """Send function that always reports a length cut with fresh text."""

    def __init__(self, finish_reason: str = "length") -> None:
        self._finish_reason = finish_reason
        self.call_count = 0

    async def __call__(self, messages: list[api_types.Message]) -> api_types.ChatResponse:  # noqa: ARG002
        self.call_count += 1
        return make_response(
            f"part {self.call_count} keeps explaining the idea without ever finishing it",
            self._finish_reason,
        )


@_pytest.fixture
def scripted_sender_factory() -> _typing.Callable[..., ScriptedSender]:
    """Factory for ScriptedSender instances."""

    def _create(*responses: api_types.ChatResponse) -> ScriptedSender:
        return ScriptedSender(list(responses))

    return _create


@_pytest.fixture
def token_counter() -> tokenization.ApproximateTokenCounter:
    """Deterministic token counter (no tiktoken download)."""
    return tokenization.ApproximateTokenCounter()


@_pytest.fixture
def user_messages() -> list[api_types.Message]:
    """A one-message conversation."""
    return [api_types.Message(role="user", content="Explain how tides work.")]
