import httpx
import pytest

from cleanops.errors import ExtractionFailure
from llm.llm_client import LLMClient, build_provider
from llm.providers.mock_provider import MockProvider


class RaisingProvider:
    def __init__(self, exc: Exception):
        self._exc = exc

    def generate(self, *, system: str, user: str, model=None) -> str:
        raise self._exc

    def describe_image(self, *, image: bytes, mime_type: str, instruction: str, model=None) -> str:
        raise self._exc


def test_complete_returns_provider_text(fake_provider_factory):
    provider = fake_provider_factory('[{"taskDescription": "Mop floor"}]')
    client = LLMClient(provider=provider)
    assert client.complete("system", "Mop floor") == '[{"taskDescription": "Mop floor"}]'
    assert provider.calls[0] == {"system": "system", "user": "Mop floor"}


def test_timeout_becomes_extraction_failure():
    timeout = httpx.ReadTimeout("timed out")
    client = LLMClient(provider=RaisingProvider(timeout))
    with pytest.raises(ExtractionFailure) as exc:
        client.complete("system", "text")
    assert exc.value.__cause__ is timeout


def test_network_error_becomes_extraction_failure():
    client = LLMClient(provider=RaisingProvider(httpx.ConnectError("connection refused")))
    with pytest.raises(ExtractionFailure):
        client.describe_image(b"img", "image/png", "read it")


def test_malformed_payload_becomes_extraction_failure():
    client = LLMClient(provider=RaisingProvider(KeyError("choices")))
    with pytest.raises(ExtractionFailure):
        client.complete("system", "text")


def test_build_provider_defaults_to_mock_without_key(monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert isinstance(build_provider(), MockProvider)


def test_build_provider_unknown():
    with pytest.raises(RuntimeError):
        build_provider("nonexistent")
