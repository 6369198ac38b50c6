"""LLM provider interface and implementations."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError
from rich.console import Console

from ..errors import GenerationError

console = Console()

LANGUAGE_NAMES = {
    "en": "English",
    "ja": "Japanese",
}


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def translate(self, texts: List[str], target_lang: str) -> List[str]:
        """
        Translate a batch of short texts.

        Args:
            texts: Texts to translate, in English
            target_lang: Target language code

        Returns:
            Translations in the same order as the input

        Raises:
            GenerationError: If the provider fails or returns a malformed answer
        """
        pass

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        pass


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (for testing)
        """
        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.total_tokens = 0
        self.api_calls = 0

    def translate(self, texts: List[str], target_lang: str) -> List[str]:
        """Translate texts using OpenAI, one numbered line per text."""
        if not texts:
            return []

        language = LANGUAGE_NAMES.get(target_lang)
        if language is None:
            raise GenerationError(f"Unsupported target language: {target_lang}")

        numbered = "\n".join(f"{i + 1}. {text}" for i, text in enumerate(texts))
        prompt = f"""Translate each numbered line below into {language}.

Rules:
- Keep product and service names (AWS, Amazon, EC2, ...) in their original form
- Keep the numbering; answer with exactly {len(texts)} numbered lines
- Do not add commentary

{numbered}"""

        try:
            self.api_calls += 1
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.0,
                max_tokens=min(200 + 120 * len(texts), 4000),
            )
        except OpenAIError as e:
            raise GenerationError(f"Translation request failed: {e}") from e

        if response.usage:
            self.total_tokens += response.usage.total_tokens

        content = (response.choices[0].message.content or "").strip()
        translations = []
        for line in content.split("\n"):
            line = line.strip()
            if not line:
                continue
            number, sep, text = line.partition(". ")
            if sep and number.isdigit():
                translations.append(text.strip())

        if len(translations) != len(texts):
            raise GenerationError(
                f"Translation returned {len(translations)} lines, expected {len(texts)}"
            )
        return translations

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        return {
            "total_tokens": self.total_tokens,
            "api_calls": self.api_calls,
            "model": self.model,
        }


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing and offline runs."""

    def __init__(self) -> None:
        """Initialize mock provider."""
        self.calls = []

    def translate(self, texts: List[str], target_lang: str) -> List[str]:
        """Tag texts with the target language instead of translating."""
        self.calls.append(("translate", target_lang, len(texts)))
        return [f"[{target_lang}] {text}" for text in texts]

    def get_usage_stats(self) -> Dict:
        """Get mock usage statistics."""
        return {
            "total_tokens": 0,
            "api_calls": len(self.calls),
            "model": "mock",
        }


def create_llm_provider(llm_config: Dict) -> LLMProvider:
    """Get configured LLM provider."""
    if llm_config.get("provider") == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            console.print("[yellow]Warning: No OpenAI API key found. Using mock LLM provider.[/yellow]")
            return MockLLMProvider()

        return OpenAIProvider(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
        )

    if llm_config.get("provider") != "mock":
        console.print("[yellow]Warning: Unknown LLM provider. Using mock provider.[/yellow]")
    return MockLLMProvider()
