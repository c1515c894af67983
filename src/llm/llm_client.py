import logging
import os
from typing import Optional

import httpx

from cleanops.errors import ExtractionFailure
from llm.providers.base import LLMProvider

logger = logging.getLogger(__name__)


def build_provider(name: Optional[str] = None) -> LLMProvider:
    """Pick the provider from ``LLM_PROVIDER`` (openai | ollama | mock)."""
    name = (name or os.getenv("LLM_PROVIDER", "")).strip().lower()
    if not name:
        name = "openai" if os.getenv("OPENAI_API_KEY", "").strip() else "mock"

    if name == "openai":
        from llm.providers.openai_provider import OpenAIProvider

        return OpenAIProvider()
    if name == "ollama":
        from llm.providers.ollama_provider import OllamaProvider

        return OllamaProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        logger.warning("Using mock LLM provider; extraction results are canned")
        return MockProvider()
    raise RuntimeError(f"Unknown LLM_PROVIDER: {name}")


class LLMClient:
    """Thin wrapper over a provider.

    Every transport or payload problem surfaces as ``ExtractionFailure``;
    nothing is retried here.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = build_provider()
        return self._provider

    def complete(self, system: str, user: str) -> str:
        try:
            return self.provider.generate(system=system, user=user) or ""
        except httpx.TimeoutException as e:
            logger.error(f"Language model timed out: {e}")
            raise ExtractionFailure(
                "The AI service took too long to respond. Please try again."
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Language model request failed: {e}")
            raise ExtractionFailure(
                "The AI service could not be reached. Please try again."
            ) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Unexpected language model payload: {e}")
            raise ExtractionFailure(
                "The AI service returned an unexpected response. Please try again."
            ) from e

    def describe_image(self, image: bytes, mime_type: str, instruction: str) -> str:
        try:
            return self.provider.describe_image(
                image=image, mime_type=mime_type, instruction=instruction
            ) or ""
        except httpx.TimeoutException as e:
            logger.error(f"Vision call timed out: {e}")
            raise ExtractionFailure(
                "The AI service took too long to read the image. Please try again."
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Vision call failed: {e}")
            raise ExtractionFailure(
                "The AI service could not be reached. Please try again."
            ) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Unexpected vision payload: {e}")
            raise ExtractionFailure(
                "The AI service returned an unexpected response. Please try again."
            ) from e
