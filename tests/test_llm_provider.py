"""Tests for generation/llm_provider.py: numbered-line translation protocol."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from sitepub.errors import GenerationError
from sitepub.generation import MockLLMProvider, OpenAIProvider, create_llm_provider


def completion(content: str, tokens: int = 42):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=tokens),
    )


@pytest.fixture
def provider() -> OpenAIProvider:
    llm = OpenAIProvider(api_key="sk-test")
    llm.client = MagicMock()
    return llm


class TestOpenAIProvider:
    def test_parses_numbered_lines(self, provider):
        provider.client.chat.completions.create.return_value = completion(
            "1. Amazon S3 に新機能\n\n2. Amazon EC2 の新インスタンス"
        )
        result = provider.translate(["Amazon S3 adds a feature", "Amazon EC2 launches"], "ja")

        assert result == ["Amazon S3 に新機能", "Amazon EC2 の新インスタンス"]
        prompt = provider.client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "Japanese" in prompt
        assert provider.get_usage_stats()["total_tokens"] == 42

    def test_line_count_mismatch(self, provider):
        provider.client.chat.completions.create.return_value = completion("1. only one")
        with pytest.raises(GenerationError, match="expected 2"):
            provider.translate(["a", "b"], "ja")

    def test_empty_input_skips_call(self, provider):
        assert provider.translate([], "ja") == []
        provider.client.chat.completions.create.assert_not_called()

    def test_unsupported_language(self, provider):
        with pytest.raises(GenerationError):
            provider.translate(["a"], "xx")


class TestFactory:
    def test_mock_without_key(self):
        assert isinstance(create_llm_provider({"provider": "openai", "api_key": None}), MockLLMProvider)

    def test_openai_with_key(self):
        assert isinstance(create_llm_provider({"provider": "openai", "api_key": "sk-test"}), OpenAIProvider)
