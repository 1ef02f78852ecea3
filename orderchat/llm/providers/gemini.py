"""Google Gemini completion provider"""

from typing import List
import google.generativeai as genai
import structlog

from orderchat.config import settings
from orderchat.schemas.llm import LLMMessage, CompletionResult, UsageStats
from orderchat.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger()


class GeminiProvider(BaseLLMProvider):
    """Google Gemini provider implementation"""

    name = "gemini"

    def __init__(self, model: str = None):
        super().__init__(model or settings.gemini_default_model)
        genai.configure(api_key=settings.gemini_api_key)

    async def generate(
        self,
        system_prompt: str,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionResult:
        """Generate response using the Gemini API"""
        client = genai.GenerativeModel(self.model, system_instruction=system_prompt)

        history = [
            {"role": "user" if msg.role == "user" else "model", "parts": [msg.content]}
            for msg in messages
        ]
        last_message = history.pop()["parts"][0] if history else ""

        chat = client.start_chat(history=history)

        logger.debug("Gemini request", model=self.model, message_count=len(history) + 1)

        response = await chat.send_message_async(
            last_message,
            generation_config=genai.types.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )

        usage = None
        metadata = getattr(response, "usage_metadata", None)
        if metadata:
            usage = UsageStats(
                input_tokens=metadata.prompt_token_count,
                output_tokens=metadata.candidates_token_count,
            )

        return CompletionResult(
            text=response.text,
            model=self.model,
            provider=self.name,
            usage=usage,
        )
