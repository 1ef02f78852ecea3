"""OpenAI completion provider"""

from typing import List
from openai import AsyncOpenAI
import structlog

from orderchat.config import settings
from orderchat.schemas.llm import LLMMessage, CompletionResult, UsageStats
from orderchat.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger()


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT provider implementation"""

    name = "openai"

    def __init__(self, model: str = None):
        super().__init__(model or settings.openai_default_model)
        self.client = AsyncOpenAI(api_key=settings.openai_api_key)

    async def generate(
        self,
        system_prompt: str,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionResult:
        """Generate response using OpenAI chat completions"""
        openai_messages = [{"role": "system", "content": system_prompt}]
        openai_messages.extend({"role": msg.role, "content": msg.content} for msg in messages)

        logger.debug("OpenAI request", model=self.model, message_count=len(openai_messages))

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=openai_messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        usage = None
        if response.usage:
            usage = UsageStats(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
            )

        return CompletionResult(
            text=response.choices[0].message.content or "",
            model=response.model or self.model,
            provider=self.name,
            usage=usage,
        )
