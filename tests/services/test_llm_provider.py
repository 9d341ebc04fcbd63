"""
Tests for the generative-text provider
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
import json

import httpx
import pytest

from standup_tracker import config
from standup_tracker.services.llm_provider import LLMProvider


class TestProviderDetection:
    @pytest.mark.parametrize(
        "api_key, expected",
        [
            ("gsk_abc", "groq"),
            ("ollama", "ollama"),
            ("sk-live", "openai"),
        ],
    )
    def test_auto_detects_from_key(self, api_key, expected):
        provider = LLMProvider(config.TestingConfig(llm_provider="auto", openai_api_key=api_key))

        assert provider.provider == expected

    def test_explicit_provider_wins(self):
        provider = LLMProvider(config.TestingConfig(llm_provider="Ollama", openai_api_key="gsk_abc"))

        assert provider.provider == "ollama"


class TestOllama:
    @pytest.mark.asyncio
    async def test_invoke_returns_generated_text(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": '["Question?"]', "eval_count": 5})

        settings = config.TestingConfig(llm_provider="ollama", ollama_model="llama3.2")
        provider = LLMProvider(settings, transport=httpx.MockTransport(handler))

        text = await provider.invoke("Ask things", max_tokens=100, temperature=0.7)

        assert text == '["Question?"]'
        assert seen["path"] == "/api/generate"
        assert seen["body"]["model"] == "llama3.2"
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"] == {"temperature": 0.7, "num_predict": 100}

    @pytest.mark.asyncio
    async def test_http_failure_raises(self):
        def handler(request):
            return httpx.Response(500)

        provider = LLMProvider(
            config.TestingConfig(llm_provider="ollama"),
            transport=httpx.MockTransport(handler)
        )

        with pytest.raises(RuntimeError):
            await provider.invoke("Ask things", max_tokens=100, temperature=0.7)


class TestOpenAICompatible:
    @pytest.mark.asyncio
    async def test_chat_completion(self):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Generated"))],
            usage=SimpleNamespace(total_tokens=42),
            model="gpt-4"
        )
        client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=response)))
        )

        with patch("openai.AsyncOpenAI", return_value=client):
            provider = LLMProvider(config.TestingConfig(llm_provider="openai", openai_api_key="sk-test"))
            result = await provider.generate_completion("Hello", system_prompt="Be brief")

        assert result.content == "Generated"
        assert result.tokens_used == 42
        assert result.provider == "openai"
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be brief"}

    def test_groq_uses_its_endpoint_by_default(self):
        provider = LLMProvider(config.TestingConfig(llm_provider="auto", openai_api_key="gsk_abc"))

        assert provider.api_base == "https://api.groq.com/openai/v1"

    def test_configured_endpoint_wins(self):
        provider = LLMProvider(config.TestingConfig(
            llm_provider="groq",
            openai_api_key="gsk_abc",
            openai_api_base="https://llm.internal/v1"
        ))

        assert provider.api_base == "https://llm.internal/v1"

    @pytest.mark.asyncio
    async def test_api_errors_become_runtime_errors(self):
        from openai import APIConnectionError

        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(
            create=AsyncMock(side_effect=APIConnectionError(request=request))
        )))

        with patch("openai.AsyncOpenAI", return_value=client):
            provider = LLMProvider(config.TestingConfig(llm_provider="openai"))
            with pytest.raises(RuntimeError):
                await provider.invoke("Hello", max_tokens=10, temperature=0.1)
