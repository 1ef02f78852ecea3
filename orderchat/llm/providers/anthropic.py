"""Anthropic Claude completion provider"""

from typing import List
from anthropic import AsyncAnthropic
import structlog

from orderchat.config import settings
from orderchat.schemas.llm import LLMMessage, CompletionResult, UsageStats
from orderchat.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger()


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider implementation"""

    name = "anthropic"

    def __init__(self, model: str = None):
        super().__init__(model or settings.anthropic_default_model)
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def generate(
        self,
        system_prompt: str,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionResult:
        """Generate response using Anthropic API"""

        # Anthropic requires alternating user/assistant turns
        processed_messages = []
        last_role = None

        for msg in messages:
            if msg.role == last_role:
                processed_messages[-1]["content"] += "\n" + msg.content
            else:
                processed_messages.append({"role": msg.role, "content": msg.content})
                last_role = msg.role

        logger.debug(
            "Anthropic request",
            model=self.model,
            message_count=len(processed_messages),
            context_length=len(system_prompt),
        )

        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=processed_messages,
        )

        text = "".join(block.text for block in response.content if block.type == "text")

        return CompletionResult(
            text=text,
            model=response.model or self.model,
            provider=self.name,
            usage=UsageStats(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
        )
