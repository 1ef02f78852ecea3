"""Ollama local completion provider"""

from typing import List
import httpx
import structlog

from orderchat.config import settings
from orderchat.schemas.llm import LLMMessage, CompletionResult, UsageStats
from orderchat.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger()


class OllamaProvider(BaseLLMProvider):
    """Ollama local model provider implementation"""

    name = "ollama"

    def __init__(self, model: str = None):
        super().__init__(model or settings.ollama_default_model)
        self.base_url = settings.ollama_base_url

    async def generate(
        self,
        system_prompt: str,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionResult:
        """Generate response using the Ollama chat endpoint"""
        ollama_messages = [{"role": "system", "content": system_prompt}]
        ollama_messages.extend({"role": msg.role, "content": msg.content} for msg in messages)

        payload = {
            "model": self.model,
            "messages": ollama_messages,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }

        logger.debug("Ollama request", model=self.model, base_url=self.base_url)

        # The gateway enforces the overall deadline
        async with httpx.AsyncClient(timeout=None) as client:
            response = await client.post(f"{self.base_url}/api/chat", json=payload)
            response.raise_for_status()
            data = response.json()

        usage = None
        if "eval_count" in data:
            usage = UsageStats(
                input_tokens=data.get("prompt_eval_count", 0),
                output_tokens=data.get("eval_count", 0),
            )

        return CompletionResult(
            text=data.get("message", {}).get("content", ""),
            model=data.get("model", self.model),
            provider=self.name,
            usage=usage,
        )
