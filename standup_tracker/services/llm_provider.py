"""
Generative-text provider for question generation and pattern analysis.

Talks to a local Ollama server over its REST API, or to any
OpenAI-compatible chat completion endpoint (OpenAI, Groq, Together...)
through the openai SDK.
"""
from typing import List, Dict, Optional

import httpx
from pydantic import BaseModel

from ..config import Settings
from ..integrations.base import GenerativeTextAdapter
from ..utils.logging import get_logger

logger = get_logger(__name__)

GROQ_API_BASE = "https://api.groq.com/openai/v1"


class Completion(BaseModel):
    content: str
    tokens_used: int = 0
    model: str
    provider: str


class LLMProvider(GenerativeTextAdapter):
    """Generative-text adapter over the configured LLM backend.

    Every backend failure surfaces as ``RuntimeError``; callers own the
    fallback.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.settings = settings
        self._transport = transport
        self.provider = self._detect_provider()
        logger.info(f"Initialized LLM provider: {self.provider}")

    def _detect_provider(self) -> str:
        configured = self.settings.llm_provider.lower()
        if configured != "auto":
            return configured

        # Infer from the API key format
        api_key = self.settings.openai_api_key
        if api_key.startswith("gsk_"):
            return "groq"
        elif "ollama" in api_key.lower():
            return "ollama"
        return "openai"

    @property
    def api_base(self) -> Optional[str]:
        """Chat completion endpoint for OpenAI-compatible providers"""
        if self.settings.openai_api_base:
            return self.settings.openai_api_base
        if self.provider == "groq":
            return GROQ_API_BASE
        return None

    async def invoke(self, prompt: str, max_tokens: int, temperature: float) -> str:
        completion = await self.generate_completion(
            prompt=prompt,
            max_tokens=max_tokens,
            temperature=temperature
        )
        logger.debug(f"{completion.provider}/{completion.model} used {completion.tokens_used} tokens")
        return completion.content

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3
    ) -> Completion:
        if self.provider == "ollama":
            return await self._ollama_completion(prompt, system_prompt, max_tokens, temperature)
        return await self._chat_completion(prompt, system_prompt, max_tokens, temperature)

    async def _ollama_completion(
        self,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float
    ) -> Completion:
        request = {
            "model": self.settings.ollama_model,
            "prompt": f"{system_prompt}\n\n{prompt}" if system_prompt else prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens
            }
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.settings.ollama_base_url,
                timeout=self.settings.question_timeout_seconds,
                transport=self._transport
            ) as client:
                response = await client.post("/api/generate", json=request)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Ollama API error: {e}")
            raise RuntimeError(f"Ollama request failed at {self.settings.ollama_base_url}") from e
        except ValueError as e:
            raise RuntimeError("Ollama returned a non-JSON response") from e

        return Completion(
            content=data.get("response") or "",
            tokens_used=data.get("eval_count", 0) + data.get("prompt_eval_count", 0),
            model=self.settings.ollama_model,
            provider="ollama"
        )

    async def _chat_completion(
        self,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float
    ) -> Completion:
        from openai import AsyncOpenAI, OpenAIError

        client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            base_url=self.api_base,
            timeout=self.settings.question_timeout_seconds
        )

        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await client.chat.completions.create(
                model=self.settings.openai_model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature
            )
        except OpenAIError as e:
            logger.error(f"{self.provider} API error: {e}")
            raise RuntimeError(f"{self.provider} completion failed: {str(e)}") from e

        if not response.choices:
            raise RuntimeError(f"{self.provider} returned no choices")

        return Completion(
            content=response.choices[0].message.content or "",
            tokens_used=response.usage.total_tokens if response.usage else 0,
            model=response.model,
            provider=self.provider
        )
